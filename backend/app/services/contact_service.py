import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.adapters.ghl_client import GHLClient

log = logging.getLogger(__name__)


class ContactServiceException(Exception):
    pass


def digits(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def find_by_phone(contacts: List[Dict], phone: str) -> Optional[Dict]:
    wanted = digits(phone)
    for c in contacts:
        candidate = c.get("phone") or ""
        if candidate and (candidate == phone or (wanted and digits(candidate) == wanted)):
            return c
    return None


class ContactService:
    """GHL contacts for walk-in customers and memberships."""

    def __init__(self, client: GHLClient):
        self.client = client

    def check_contact(self, phone: str) -> Dict:
        contact = find_by_phone(self.client.search_contacts(phone), phone)
        if not contact:
            return {"exists": False}
        fields = contact.get("customFields") or {}
        if not isinstance(fields, dict):
            fields = {}
        name = f"{contact.get('firstName') or ''} {contact.get('lastName') or ''}".strip()
        return {
            "exists": True,
            "contact": {
                "id": contact.get("id"),
                "name": name,
                "phone": contact.get("phone"),
                "email": contact.get("email"),
                "tags": contact.get("tags") or [],
                "customerType": fields.get("customerType") or "unknown",
                "membershipType": fields.get("membershipType"),
            },
        }

    def upgrade_walkin_to_membership(self, phone: str, customer: Optional[Dict], membership_type: str) -> Dict:
        if not phone or not membership_type:
            raise ContactServiceException("phoneNumber and membershipType are required")
        customer = customer or {}
        now = datetime.now(timezone.utc).isoformat()

        existing = find_by_phone(self.client.search_contacts(phone), phone)
        if existing:
            fields = existing.get("customFields")
            fields = dict(fields) if isinstance(fields, dict) else {}
            fields.update(
                membershipType=membership_type,
                membershipStartDate=now,
                customerType="member",
                upgradeDate=now,
                previousType="walkin",
            )
            tags = list(existing.get("tags") or [])
            for tag in ("membership", membership_type):
                if tag not in tags:
                    tags.append(tag)
            self.client.update_contact(
                existing["id"], dict(customer, phone=phone, tags=tags, customFields=fields)
            )
            log.info("Upgraded walk-in %s to %s membership", existing.get("id"), membership_type)
            return {
                "success": True,
                "message": "Walk-in customer successfully upgraded to membership",
                "contactId": existing["id"],
                "membershipType": membership_type,
                "action": "upgraded_existing",
            }

        created = self.client.create_contact(
            dict(
                customer,
                phone=phone,
                tags=["membership", membership_type],
                customFields={
                    "membershipType": membership_type,
                    "membershipStartDate": now,
                    "customerType": "member",
                },
            )
        )
        contact = created.get("contact") or created
        log.info("Created new membership contact %s", contact.get("id"))
        return {
            "success": True,
            "message": "New membership created successfully",
            "contactId": contact.get("id"),
            "membershipType": membership_type,
            "action": "created_new",
        }
