"""HTTP interface for the lock service."""

from leasehold.api.app import create_app

__all__ = ["create_app"]
