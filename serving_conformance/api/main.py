from __future__ import annotations

from fastapi import FastAPI

from serving_conformance.api.endpoints import health
from serving_conformance.api.endpoints import metrics as metrics_ep
from serving_conformance.api.endpoints import serving
from serving_conformance.api.middleware.error_shaping import SafeErrorMiddleware
from serving_conformance.api.middleware.request_context import RequestContextMiddleware
from serving_conformance.core.errors import AccessorError

app = FastAPI(
    title="Serving Conformance Reference API",
    version="0.1.0",
)

# ------------------------------------------------------------
# Middleware stack (ORDER MATTERS)
# Starlette reverses add_middleware order - the LAST call = OUTERMOST wrapper.
#   SafeErrorMiddleware → RequestContext → handler
# ------------------------------------------------------------
app.add_middleware(RequestContextMiddleware)
app.add_middleware(SafeErrorMiddleware)

app.add_exception_handler(AccessorError, serving.accessor_error_handler)

app.include_router(serving.router)
app.include_router(health.router)
app.include_router(metrics_ep.router)
