"""
Structured audit logging module for the IP Check backend.

This module provides an AuditLogger class that logs events to a dedicated 'audit' logger
in structured JSON format. It supports context-aware request_id propagation across async
calls using contextvars.ContextVar.

Key features:
- Async-safe request_id tracking via ContextVar
- Structured JSON output with ISO8601 timestamps
- Convenience methods for inventory writes and reachability sweeps
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Optional


# Context variable for tracking request_id across async calls
_request_id_context: ContextVar[Optional[str]] = ContextVar(
    'request_id', default=None
)


class AuditLogger:
    """
    Structured audit logger for inventory writes and sweeps.

    All events are written to a dedicated 'audit' logger in JSON format.
    """

    def __init__(self):
        """Initialize the AuditLogger with a dedicated 'audit' logger."""
        self.logger = logging.getLogger('audit')

    def set_request_id(self, request_id: str) -> None:
        """
        Set the request_id for the current context.

        Args:
            request_id: Unique identifier for the current request/operation
        """
        _request_id_context.set(request_id)

    def get_request_id(self) -> Optional[str]:
        """
        Get the current request_id from context.

        Returns:
            The request_id if set, None otherwise
        """
        return _request_id_context.get()

    def log(
        self,
        action: str,
        actor: str,
        resource: str,
        resource_id: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Core method to log a structured audit event.

        Args:
            action: Type of action performed (e.g., 'UPSERT', 'DELETE', 'SWEEP')
            actor: User or service performing the action
            resource: Type of resource affected (e.g., 'Site', 'AssignedIP', 'IPCheck')
            resource_id: Unique identifier of the affected resource
            status: Result status (e.g., 'success', 'failure')
            details: Optional dict of additional context
        """
        event = {
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'action': action,
            'actor': actor,
            'resource': resource,
            'resource_id': resource_id,
            'status': status,
            'request_id': self.get_request_id(),
            'details': details or {},
        }
        self.logger.info(json.dumps(event, default=str))

    def log_site_change(self, operation: str, sitename: str, affected_rows: int) -> None:
        """Log a site upsert or delete."""
        self.log(
            action=operation,
            actor='user',
            resource='Site',
            resource_id=sitename,
            status='success',
            details={'affected_rows': affected_rows},
        )

    def log_assignment_change(
        self,
        operation: str,
        ip_address: str,
        sitename: Optional[str] = None,
    ) -> None:
        """Log a site-assignment upsert or delete."""
        details = {}
        if sitename:
            details['sitename'] = sitename

        self.log(
            action=operation,
            actor='user',
            resource='AssignedIP',
            resource_id=ip_address,
            status='success',
            details=details,
        )

    def log_ip_check_change(
        self,
        operation: str,
        ip_address: str,
        status: str,
        modified_by: Optional[str] = None,
        changes: Optional[list] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Log a device-record write.

        Args:
            operation: 'UPSERT' or 'DELETE'
            ip_address: IP the device record is keyed on
            status: 'success' or 'failure' (failure means rolled back)
            modified_by: Operator name sent with the write
            changes: Names of the fields written (values are not logged)
            error_message: Optional error message if the write failed
        """
        details: Dict[str, Any] = {}
        if changes:
            details['changed_fields'] = sorted(changes)
        if error_message:
            details['error_message'] = error_message

        self.log(
            action=operation,
            actor=modified_by or 'user',
            resource='IPCheck',
            resource_id=ip_address,
            status=status,
            details=details,
        )

    def log_sweep(self, target: str, host_count: int, alive_count: int) -> None:
        """
        Log a completed reachability sweep.

        Args:
            target: The ipRange value that was swept
            host_count: Number of addresses probed
            alive_count: Number of addresses that answered
        """
        self.log(
            action='SWEEP',
            actor='user',
            resource='Subnet',
            resource_id=target,
            status='success',
            details={'host_count': host_count, 'alive_count': alive_count},
        )


# Global audit logger instance for convenient import
audit = AuditLogger()
