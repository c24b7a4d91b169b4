import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException

from app.adapters.stripe_terminal import StripeNotConfigured, StripeTerminalAdapter
from app.api.deps import get_terminal_adapter
from app.schemas.pos_schema import PaymentIntentRequest

log = logging.getLogger(__name__)

router = APIRouter(tags=["terminal"])


@router.post("/connection_token")
def connection_token(terminal: StripeTerminalAdapter = Depends(get_terminal_adapter)):
    try:
        return {"secret": terminal.create_connection_token()}
    except (stripe.StripeError, StripeNotConfigured) as e:
        log.error("Connection token error: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/create_payment_intent")
def create_payment_intent(
    payload: PaymentIntentRequest, terminal: StripeTerminalAdapter = Depends(get_terminal_adapter)
):
    try:
        intent = terminal.create_payment_intent(payload.amount)
    except (stripe.StripeError, StripeNotConfigured) as e:
        log.error("Create PaymentIntent error: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"client_secret": intent["client_secret"]}


@router.get("/stripe/config")
def stripe_config(terminal: StripeTerminalAdapter = Depends(get_terminal_adapter)):
    return terminal.config()
