import logging
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key

from saferoute import settings

log = logging.getLogger(__name__)

dynamodb = boto3.resource("dynamodb", region_name=settings.AWS_REGION)
reports_table = dynamodb.Table(settings.REPORTS_TABLE)
users_table = dynamodb.Table(settings.USERS_TABLE)
admins_table = dynamodb.Table(settings.ADMINS_TABLE)


def scan_reports(barangay: Optional[str] = None, page_limit: int = 1000) -> List[Dict[str, Any]]:
    """
    Full snapshot of the Reports table. With `barangay` set the scan is filtered
    server-side (restricted admins only ever see their own barangay).
    Auto-paginates until LastEvaluatedKey runs out.
    """
    items: List[Dict[str, Any]] = []
    lek: Optional[Dict[str, Any]] = None

    while True:
        kwargs: Dict[str, Any] = {"Limit": page_limit}
        if barangay:
            kwargs["FilterExpression"] = Attr("barangay").eq(barangay)
        if lek:
            kwargs["ExclusiveStartKey"] = lek

        resp = reports_table.scan(**kwargs)
        items.extend(resp.get("Items", []))
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            break

    return items


def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    """Return the full Users item or None."""
    resp = users_table.get_item(Key={"user_id": user_id})
    return resp.get("Item")


def _first_by_email(table, index_name: str, email: str) -> Optional[Dict[str, Any]]:
    """
    Equality lookup on `email`. Prefer the GSI; fall back to a paged scan if the
    index is missing on this table.
    """
    try:
        resp = table.query(
            IndexName=index_name,
            KeyConditionExpression=Key("email").eq(email),
            Limit=1,
        )
        items = resp.get("Items", [])
        return items[0] if items else None
    except Exception as e:
        log.info("email index %s unavailable on %s (%s), scanning", index_name, table.name, e)

    lek: Optional[Dict[str, Any]] = None
    while True:
        kwargs: Dict[str, Any] = {"FilterExpression": Attr("email").eq(email)}
        if lek:
            kwargs["ExclusiveStartKey"] = lek
        resp = table.scan(**kwargs)
        items = resp.get("Items", [])
        if items:
            return items[0]
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            return None


def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return _first_by_email(users_table, settings.USERS_EMAIL_INDEX, email)


def find_admin_by_email(email: str) -> Optional[Dict[str, Any]]:
    return _first_by_email(admins_table, settings.ADMINS_EMAIL_INDEX, email)


def update_report_status(report_id: str, status: str) -> None:
    """Set `status` on an existing report. Raises ClientError if the report is gone."""
    reports_table.update_item(
        Key={"id": report_id},
        UpdateExpression="SET #s = :s",
        ConditionExpression="attribute_exists(#id)",
        ExpressionAttributeNames={"#s": "status", "#id": "id"},  # reserved words, alias them
        ExpressionAttributeValues={":s": status},
    )


def delete_report(report_id: str) -> None:
    reports_table.delete_item(Key={"id": report_id})
