"""
Request dependencies.
"""

from fastapi import Request

from salesrecon.service import ReconciliationService


def get_service(request: Request) -> ReconciliationService:
    """The process-wide service created at startup"""
    return request.app.state.service
