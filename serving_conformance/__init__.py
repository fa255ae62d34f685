"""Conformance checks for the serving Configuration/Revision API.

Mutate a live Configuration, wait for the controller to converge, and verify that
metadata-only changes neither create a Revision nor propagate onto one.
"""

__version__ = "0.1.0"
