"""
Shared API dependencies.

Tenant identity and licence checks happen upstream; by the time a
request reaches these routes the X-Tenant-ID header is trusted.
"""

from fastapi import Header


def get_tenant_id(x_tenant_id: int = Header(..., gt=0)) -> int:
    """The tenant the request acts for."""
    return x_tenant_id
