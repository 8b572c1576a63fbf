"""Routing — exact-path route table used as the innermost handler."""

from perch.routing.route import Route
from perch.routing.router import Router

__all__ = ["Route", "Router"]
