from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from mediasync.core.config import (
    SUPABASE_URL,
    SUPABASE_SERVICE_ROLE_KEY,
    STORAGE_TIMEOUT_SECONDS,
)

_SUPABASE: Client | None = None

def supabase_admin() -> Client:
    global _SUPABASE
    if _SUPABASE is not None:
        return _SUPABASE

    if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")

    _SUPABASE = create_client(
        SUPABASE_URL,
        SUPABASE_SERVICE_ROLE_KEY,
        options=ClientOptions(storage_client_timeout=STORAGE_TIMEOUT_SECONDS),
    )
    return _SUPABASE
