import base64
import json
import time
from urllib.parse import urlsplit


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")
        self.content = self.text.encode()

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


class FakeSession:
    """
    Stands in for requests.Session. Responses are registered per (method, path);
    several responses for one route are served in order, the last one repeats.
    A response may be a callable taking (method, url, kwargs).
    """

    def __init__(self):
        self.calls = []
        self.routes = []

    def add(self, method, path, *responses):
        self.routes.append((method, path.rstrip("/"), list(responses)))
        return self

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        path = urlsplit(url).path.rstrip("/")
        for m, p, responses in self.routes:
            if m == method and p == path:
                resp = responses.pop(0) if len(responses) > 1 else responses[0]
                return resp(method, url, kwargs) if callable(resp) else resp
        return FakeResponse(404, {"msg": f"no fake for {method} {path}"})

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and urlsplit(c[1]).path.rstrip("/") == path.rstrip("/")]


def make_jwt(expires_in=3600, **claims):
    def enc(obj):
        return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()

    payload = dict(claims, exp=int(time.time()) + expires_in)
    return f"{enc({'alg': 'HS256', 'typ': 'JWT'})}.{enc(payload)}.signature"


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def send_low_stock_alert(self, product_name, current_stock, threshold=20):
        self.sent.append((product_name, current_stock, threshold))
        return True


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.messages = []
        self.logged_in = None
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg):
        self.messages.append(msg)


class FakeTerminal:
    configured = True

    def __init__(self, fail=None):
        self.fail = fail
        self.intents = []

    def create_connection_token(self):
        if self.fail:
            raise self.fail
        return "pst_test_secret"

    def create_payment_intent(self, amount):
        if self.fail:
            raise self.fail
        self.intents.append(amount)
        return {"id": "pi_123", "client_secret": "pi_123_secret_abc", "amount": amount}

    def config(self):
        return {
            "testMode": True,
            "liveMode": False,
            "configured": True,
            "publishableKey": "pk_test_123",
            "environment": "test",
        }

    def diagnose(self):
        return {"configured": True, "steps": {"account": {"ok": True, "id": "acct_1"}}, "ok": True}
