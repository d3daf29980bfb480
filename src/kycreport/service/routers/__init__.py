from . import flows, report  # noqa: F401
