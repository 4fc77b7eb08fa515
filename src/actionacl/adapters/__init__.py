"""Framework adapters. Each module imports its framework at import time;
install the matching extra (``actionacl[flask]``, ``[starlette]``, ``[litestar]``)."""
