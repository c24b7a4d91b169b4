import logging

from fastapi import APIRouter, Depends, HTTPException

from app.adapters.ghl_client import GHLAPIError, GHLAuthError, GHLClient, GHLError
from app.api.deps import get_ghl_client
from app.schemas.pos_schema import MembershipUpgrade
from app.services.contact_service import ContactService, ContactServiceException

log = logging.getLogger(__name__)

router = APIRouter(tags=["contacts"])


@router.post("/upgrade-walkin-to-membership")
def upgrade_walkin(payload: MembershipUpgrade, client: GHLClient = Depends(get_ghl_client)):
    try:
        return ContactService(client).upgrade_walkin_to_membership(
            payload.phoneNumber, payload.customerData, payload.membershipType
        )
    except ContactServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GHLAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except GHLError as e:
        log.error("Walk-in to membership upgrade failed: %s", e)
        details = e.body if isinstance(e, GHLAPIError) else str(e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to upgrade walk-in to membership", "details": details},
        )


@router.get("/check-contact/{phone}")
def check_contact(phone: str, client: GHLClient = Depends(get_ghl_client)):
    try:
        return ContactService(client).check_contact(phone)
    except GHLAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except GHLError as e:
        log.error("Contact check failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to check contact")
