"""Shared middleware for cross-cutting concerns.

This module contains components that are shared across bounded contexts.
The tenant context is the primary component, resolved from the
X-Tenant-ID request header.
"""
