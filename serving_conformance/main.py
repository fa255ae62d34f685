from serving_conformance.api.main import app

if __name__ == "__main__":
    import os
    import uvicorn
    host = os.getenv("CONFORMANCE_HOST", "0.0.0.0")
    port = int(os.getenv("CONFORMANCE_PORT", "8001"))
    uvicorn.run(app, host=host, port=port)
