# backend/saferoute/db/adapters.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from saferoute.db import dynamo


class DynamoDirectory:
    """
    Users/Admins lookups for the identity resolver.
    boto3 is blocking, so each call runs in a worker thread and the event loop
    keeps resolving the other reports of the batch meanwhile.
    """

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(dynamo.get_user, user_id)

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(dynamo.find_user_by_email, email)

    async def find_admin_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(dynamo.find_admin_by_email, email)


class DynamoReportStore:
    """Snapshot reads and single-item mutations on the Reports table."""

    async def snapshot(self, barangay: Optional[str] = None) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(dynamo.scan_reports, barangay)

    async def set_status(self, report_id: str, status: str) -> None:
        await asyncio.to_thread(dynamo.update_report_status, report_id, status)

    async def delete(self, report_id: str) -> None:
        await asyncio.to_thread(dynamo.delete_report, report_id)
