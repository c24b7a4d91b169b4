import os
import tempfile

# point every file and the database at a throwaway directory before app.config is imported
_tmp = tempfile.mkdtemp(prefix="pos-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["TOKEN_FILE"] = os.path.join(_tmp, "tokens.json")
os.environ["SYNC_CACHE_FILE"] = os.path.join(_tmp, "sync-cache.json")
os.environ["LOCAL_INVENTORY_FILE"] = os.path.join(_tmp, "ghl-items.json")
os.environ["GHL_CLIENT_ID"] = "test-client"
os.environ["GHL_CLIENT_SECRET"] = "test-secret"
os.environ["GHL_LOCATION_ID"] = "loc-123"
os.environ["GHL_REDIRECT_URI"] = "http://localhost:5000/callback"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""
os.environ["LOW_STOCK_THRESHOLD"] = "20"
os.environ["RESET_DB"] = "0"
