"""FastAPI application for the issue tracker."""
