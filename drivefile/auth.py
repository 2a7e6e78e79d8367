import json
import logging
import os
import time
from collections.abc import Mapping
from datetime import timezone
from functools import lru_cache
from pathlib import Path

# Allow Google to return broader scopes than requested (e.g. from prior grants)
os.environ["OAUTHLIB_RELAX_TOKEN_SCOPE"] = "1"

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from pydantic import BaseModel, ValidationError

from drivefile import pages
from drivefile.config import Settings, get_settings
from drivefile.exceptions import AuthenticationError, AuthExchangeError, NoRefreshTokenError
from drivefile.models.common import StatusResponse
from drivefile.models.drive import OpenFilesRequest, OpenFilesResponse

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]

TOKEN_URI = "https://oauth2.googleapis.com/token"
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"

# Refresh slightly ahead of the real expiry
EXPIRY_MARGIN_MS = 60_000


class StoredCredential(BaseModel):
    """Token record as written to the token file (expiry in epoch milliseconds)."""

    access_token: str | None = None
    refresh_token: str | None = None
    expiry_date: int | None = None

    def is_expired(self, now_ms: int | None = None) -> bool:
        if self.expiry_date is None:
            return False
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return now_ms >= self.expiry_date - EXPIRY_MARGIN_MS


def _expiry_ms(credentials: Credentials) -> int | None:
    if credentials.expiry is None:
        return None
    return int(credentials.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)


class CredentialStore:
    """Holds the OAuth token pair in memory and mirrors it to a local JSON file.

    Only this object mutates the credential. Every mutation is persisted on a
    best-effort basis: a failed write is logged and the in-memory token keeps
    working for the rest of the process.
    """

    def __init__(self, settings: Settings, path: Path | None = None):
        self.settings = settings
        self.path = path or settings.token_file
        self._credential: StoredCredential | None = None
        self._flow: Flow | None = None
        self.load()

    # --- persistence ---

    def load(self) -> StoredCredential | None:
        if not self.path.exists():
            return None
        try:
            self._credential = StoredCredential.model_validate(json.loads(self.path.read_text()))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Failed to load saved credentials from %s, starting fresh: %s", self.path, e)
            self._credential = None
            return None
        logger.info("Loaded saved credentials from %s", self.path)
        return self._credential

    def _save(self) -> None:
        if self._credential is None:
            return
        try:
            self.path.write_text(json.dumps(self._credential.model_dump(exclude_none=True), indent=2))
        except OSError as e:
            logger.warning("Could not persist tokens to %s: %s", self.path, e)

    # --- OAuth flow ---

    @property
    def client_id(self) -> str:
        return self.settings.google_client_id

    @property
    def app_id(self) -> str:
        """Cloud project number, the leading segment of the client id. The Picker needs it to register grants."""
        return self.client_id.split("-")[0]

    def _get_flow(self) -> Flow:
        if self._flow is None:
            client_config = {
                "web": {
                    "client_id": self.settings.google_client_id,
                    "client_secret": self.settings.google_client_secret,
                    "auth_uri": AUTH_URI,
                    "token_uri": TOKEN_URI,
                    "redirect_uris": [self.settings.redirect_uri],
                }
            }
            self._flow = Flow.from_client_config(
                client_config,
                scopes=DRIVE_SCOPES,
                redirect_uri=self.settings.redirect_uri,
                autogenerate_code_verifier=False,
            )
        return self._flow

    def authorization_url(self) -> str:
        auth_url, _ = self._get_flow().authorization_url(access_type="offline", prompt="consent")
        return auth_url

    def exchange_code(self, code: str) -> StoredCredential:
        flow = self._get_flow()
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            raise AuthExchangeError(f"Failed to exchange authorization code: {e}") from e
        creds = flow.credentials
        self._credential = StoredCredential(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry_date=_expiry_ms(creds),
        )
        self._save()
        logger.info("Authorization code exchanged for tokens")
        return self._credential

    def set_direct(self, tokens: Mapping[str, object]) -> StoredCredential:
        self._credential = StoredCredential.model_validate(dict(tokens))
        self._save()
        return self._credential

    # --- access ---

    def is_authenticated(self) -> bool:
        return bool(self._credential and self._credential.access_token)

    def ensure_authenticated(self) -> None:
        if self.is_authenticated():
            return
        if self.settings.is_http:
            raise AuthenticationError(
                f"Not authenticated. Ask the user to visit {self.settings.base_url} and sign in with Google."
            )
        raise AuthenticationError(
            "Not authenticated. Call gdrive_authenticate to get an auth URL, then ask the user to visit it "
            "and provide the code to gdrive_set_credentials."
        )

    def get_fresh_access_token(self) -> str:
        """Return a valid access token, refreshing and persisting it first when expired."""
        credential = self._credential
        if credential and credential.access_token and not credential.is_expired():
            return credential.access_token
        if not credential or not credential.refresh_token:
            raise NoRefreshTokenError("Access token expired and no refresh token is available. Re-authenticate.")

        creds = Credentials(
            token=None,
            refresh_token=credential.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
            scopes=DRIVE_SCOPES,
        )
        try:
            creds.refresh(Request())
        except GoogleAuthError as e:
            raise AuthExchangeError(f"Failed to refresh access token: {e}") from e

        self._credential = StoredCredential(
            access_token=creds.token,
            refresh_token=creds.refresh_token or credential.refresh_token,
            expiry_date=_expiry_ms(creds),
        )
        self._save()
        logger.info("Access token refreshed")
        return self._credential.access_token

    def get_credentials(self) -> Credentials:
        """google-auth credentials for building the Drive client."""
        self.ensure_authenticated()
        token = self.get_fresh_access_token()
        return Credentials(
            token=token,
            refresh_token=self._credential.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
            scopes=DRIVE_SCOPES,
        )


@lru_cache
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_settings())


def get_drive_credentials() -> Credentials:
    return get_credential_store().get_credentials()


# --- Sign-in and Picker router ---

router = APIRouter(tags=["auth"])


@router.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    """Sign-in page when unauthenticated, Picker page afterwards."""
    store = get_credential_store()
    if store.is_authenticated():
        try:
            access_token = store.get_fresh_access_token()
        except AuthenticationError as e:
            logger.warning("Stored credentials unusable, showing sign-in page: %s", e)
        else:
            return HTMLResponse(pages.picker_page(access_token, store.client_id, store.app_id))
    return HTMLResponse(pages.login_page(store.authorization_url()))


@router.get("/oauth/callback", response_model=None)
def oauth_callback(code: str | None = None, error: str | None = None) -> HTMLResponse | RedirectResponse:
    """Handle the OAuth redirect from Google, exchange the code for tokens."""
    if error:
        return HTMLResponse(pages.error_page("Authentication Failed", f"Error: {error}"))
    if not code:
        return HTMLResponse(
            pages.error_page("No Authorization Code", "No authorization code received. Please try again.")
        )
    try:
        get_credential_store().exchange_code(code)
    except AuthExchangeError as e:
        return HTMLResponse(pages.error_page("Authentication Error", str(e)))
    return RedirectResponse("/?authenticated=true", status_code=302)


@router.post("/api/open-files")
def open_files(request: OpenFilesRequest) -> OpenFilesResponse:
    """Touch each file picked in the browser so the drive.file grant registers for this app."""
    from drivefile.services import drive as drive_service

    if not request.file_ids:
        return OpenFilesResponse(success=False, error="No file IDs provided")
    try:
        results = drive_service.open_files(request.file_ids)
    except AuthenticationError as e:
        return OpenFilesResponse(success=False, error=str(e))
    all_succeeded = all(r.success for r in results)
    return OpenFilesResponse(
        success=all_succeeded,
        results=results,
        message=(
            f"Successfully opened {len(request.file_ids)} file(s)"
            if all_succeeded
            else "Some files could not be accessed"
        ),
    )


@router.get("/api/status")
def auth_status() -> StatusResponse:
    """Check whether the server holds a credential."""
    settings = get_settings()
    authenticated = get_credential_store().is_authenticated()
    return StatusResponse(
        authenticated=authenticated,
        transport=settings.transport,
        message="Authenticated" if authenticated else f"Not authenticated. Visit {settings.base_url} to sign in.",
    )
