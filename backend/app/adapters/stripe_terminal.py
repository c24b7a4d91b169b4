import logging
from typing import Dict, Optional

import stripe

log = logging.getLogger(__name__)


class StripeNotConfigured(Exception):
    pass


class StripeTerminalAdapter:
    """
    Stripe Terminal operations behind the POS: connection tokens for the
    reader SDK and card_present PaymentIntents. The secret key is passed per
    call so several adapters (test and live) can coexist in one process.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        currency: str = "aud",
        publishable_key: Optional[str] = None,
        environment: str = "development",
    ):
        self.secret_key = secret_key
        self.currency = currency
        self.publishable_key = publishable_key
        self.environment = environment

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    @property
    def test_mode(self) -> bool:
        return bool(self.secret_key and self.secret_key.startswith("sk_test_"))

    @property
    def live_mode(self) -> bool:
        return bool(self.secret_key and self.secret_key.startswith("sk_live_"))

    def _key(self) -> str:
        if not self.secret_key:
            raise StripeNotConfigured("STRIPE_SECRET_KEY is not set")
        return self.secret_key

    def create_connection_token(self) -> str:
        token = stripe.terminal.ConnectionToken.create(api_key=self._key())
        log.info("Connection token created")
        return token.secret

    def create_payment_intent(self, amount: int) -> Dict:
        """`amount` is in the smallest currency unit (cents)."""
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=self.currency,
            payment_method_types=["card_present"],
            capture_method="automatic",
            api_key=self._key(),
        )
        log.info("PaymentIntent %s created for %s %s", intent.id, amount, self.currency)
        return {"id": intent.id, "client_secret": intent.client_secret, "amount": intent.amount}

    def config(self) -> Dict:
        return {
            "testMode": self.test_mode,
            "liveMode": self.live_mode,
            "configured": self.configured,
            "publishableKey": self.publishable_key,
            "environment": self.environment,
        }

    def health_check(self) -> Dict:
        if not self.configured:
            return {"ok": False, "error": "not configured"}
        try:
            account = stripe.Account.retrieve(api_key=self._key())
        except stripe.StripeError as e:
            return {"ok": False, "error": str(e)}
        return {"ok": True, "account": account.id, "mode": "test" if self.test_mode else "live"}

    def diagnose(self) -> Dict:
        """
        Walk through what a Terminal deployment needs: account, Terminal enablement,
        capabilities, key mode, a test PaymentIntent, webhooks, readers, locations.
        Every step records ok/error; only a failure to reach the account stops the run.
        """
        report = {"configured": self.configured, "steps": {}}
        steps = report["steps"]
        if not self.configured:
            report["error"] = "STRIPE_SECRET_KEY is not set"
            return report
        key = self._key()

        try:
            account = stripe.Account.retrieve(api_key=key)
        except stripe.AuthenticationError as e:
            report["error"] = str(e)
            report["hint"] = "Check the secret key is correct and the account is activated"
            return report
        except stripe.PermissionError as e:
            report["error"] = str(e)
            report["hint"] = "The account may not have Terminal enabled for this mode"
            return report
        except stripe.StripeError as e:
            report["error"] = str(e)
            return report

        steps["account"] = {
            "ok": True,
            "id": account.id,
            "country": account.get("country"),
            "businessType": account.get("business_type"),
            "chargesEnabled": account.get("charges_enabled"),
            "payoutsEnabled": account.get("payouts_enabled"),
            "detailsSubmitted": account.get("details_submitted"),
        }

        try:
            token = stripe.terminal.ConnectionToken.create(api_key=key)
            steps["terminal"] = {"ok": True, "tokenPrefix": token.secret[:20]}
        except stripe.StripeError as e:
            steps["terminal"] = {"ok": False, "error": str(e)}
            if "not enabled" in str(e):
                steps["terminal"]["action"] = "Enable Terminal in the Stripe Dashboard"

        capabilities = account.get("capabilities") or {}
        steps["capabilities"] = {
            "ok": True,
            "cardPayments": capabilities.get("card_payments", "unknown"),
            "transfers": capabilities.get("transfers", "unknown"),
        }
        steps["mode"] = {"ok": True, "keyType": "TEST" if self.test_mode else "LIVE", "liveMode": not self.test_mode}

        try:
            intent = stripe.PaymentIntent.create(
                amount=100,
                currency=self.currency,
                payment_method_types=["card_present"],
                capture_method="automatic",
                api_key=key,
            )
            steps["paymentIntent"] = {"ok": True, "id": intent.id, "amount": intent.amount / 100}
        except stripe.StripeError as e:
            steps["paymentIntent"] = {"ok": False, "error": str(e)}
            if "card_present" in str(e):
                steps["paymentIntent"]["action"] = "Check Terminal setup or country restrictions"
            elif "currency" in str(e):
                steps["paymentIntent"]["action"] = f"The account may not support {self.currency.upper()}"

        try:
            hooks = stripe.WebhookEndpoint.list(limit=10, api_key=key)
            steps["webhooks"] = {
                "ok": True,
                "count": len(hooks.data),
                "endpoints": [{"url": h.url, "events": len(h.enabled_events)} for h in hooks.data],
            }
        except stripe.StripeError as e:
            steps["webhooks"] = {"ok": False, "error": str(e)}

        try:
            readers = stripe.terminal.Reader.list(limit=10, api_key=key)
            steps["readers"] = {
                "ok": True,
                "count": len(readers.data),
                "readers": [
                    {"deviceType": r.device_type, "status": r.get("status"), "location": r.get("location")}
                    for r in readers.data
                ],
            }
        except stripe.StripeError as e:
            steps["readers"] = {"ok": False, "error": str(e)}

        try:
            locations = stripe.terminal.Location.list(limit=10, api_key=key)
            steps["locations"] = {
                "ok": True,
                "count": len(locations.data),
                "locations": [
                    {
                        "displayName": loc.display_name,
                        "city": (loc.get("address") or {}).get("city"),
                        "country": (loc.get("address") or {}).get("country"),
                    }
                    for loc in locations.data
                ],
            }
            if not locations.data:
                steps["locations"]["action"] = "Create a Terminal location in the Stripe Dashboard"
        except stripe.StripeError as e:
            steps["locations"] = {"ok": False, "error": str(e)}

        report["ok"] = all(s.get("ok") for s in steps.values())
        return report
