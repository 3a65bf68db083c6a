import asyncio
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from loguru import logger

from ..datasources.base import AuthDataSource
from ..errors import ConfigurationError, InvalidTransition, MissingCode
from ..schemas import SignInState, SignInStatus
from .channels import StateChannel
from .credentials import CredentialStore
from .flow import BaseFlow
from .scope import TaskScope


def extract_code(redirect: str) -> Optional[str]:
    """Pull ``code`` out of a redirect URL or a bare query string."""
    parts = urlsplit(redirect)
    query = parts.query if (parts.scheme or parts.query) else redirect
    values = parse_qs(query).get("code")
    return values[0] if values else None


class SignInFlow(BaseFlow):
    """OAuth authorization-code sign-in.

    IDLE -> AWAITING_AUTHORIZATION -> EXCHANGING_CODE -> SIGNED_IN, with FAILED
    reachable from the two middle states. A failed attempt is never retried;
    the user starts over with ``start_sign_in``.
    """

    tag = "sign-in"

    def __init__(
        self,
        api: AuthDataSource,
        credentials: CredentialStore,
        client_id: Optional[str],
        client_secret: Optional[str],
        scope: Optional[TaskScope] = None,
    ):
        super().__init__(scope)
        self.api = api
        self.credentials = credentials
        self.client_id = client_id
        self.client_secret = client_secret
        self.state: StateChannel[SignInState] = StateChannel(SignInState.IDLE)
        self.access_token: StateChannel[Optional[str]] = StateChannel()
        self.last_message: Optional[str] = None

    def _move(self, state: SignInState) -> None:
        if self.state.value is not state:
            logger.info(f"[sign-in] {self.state.value.value} -> {state.value}")
        self.state.publish(state)

    def _fail(self, exc: Exception) -> None:
        self._move(SignInState.FAILED)
        self.last_message = self.report(exc)

    async def load_access_token(self) -> Optional[str]:
        """Restore a saved token. Goes straight to SIGNED_IN when one exists."""
        token = await asyncio.to_thread(self.credentials.get)
        if token:
            self._move(SignInState.SIGNED_IN)
        self.access_token.publish(token)
        return token

    def start_sign_in(self) -> str:
        """Return the URL the browser should open. No network call."""
        if self.state.value is SignInState.EXCHANGING_CODE:
            raise InvalidTransition("Sign-in is already in progress")
        if not self.client_id:
            raise ConfigurationError("GITHUB_CLIENT_ID is not set")
        url = self.api.authorization_url(self.client_id)
        self.last_message = None
        self._move(SignInState.AWAITING_AUTHORIZATION)
        return url

    def handle_redirect(self, redirect: str) -> asyncio.Task:
        if self.state.value is not SignInState.AWAITING_AUTHORIZATION:
            raise InvalidTransition("Sign-in was not started")
        code = extract_code(redirect)
        if not code:
            exc = MissingCode()
            self._fail(exc)
            raise exc
        # claim the transition before yielding, a second redirect must see it
        self._move(SignInState.EXCHANGING_CODE)
        task = self.scope.launch(self.exchange(code))
        task.add_done_callback(self._exchange_done)
        return task

    def _exchange_done(self, task: asyncio.Task) -> None:
        # a task cancelled before its first step never reaches its own handler
        if task.cancelled() and self.state.value is SignInState.EXCHANGING_CODE:
            self._move(SignInState.IDLE)

    def _signed_in(self, token: str) -> None:
        self.access_token.publish(token)
        self._move(SignInState.SIGNED_IN)

    async def exchange(self, code: str) -> str:
        if not self.client_id or not self.client_secret:
            exc = ConfigurationError("GitHub OAuth credentials are not set")
            self._fail(exc)
            raise exc

        self._move(SignInState.EXCHANGING_CODE)
        self.is_loading.publish(True)
        try:
            token = await self.api.exchange_code(self.client_id, self.client_secret, code)
            saving = asyncio.ensure_future(asyncio.to_thread(self.credentials.set, token))
            try:
                await asyncio.shield(saving)
            except asyncio.CancelledError:
                # the worker thread commits regardless, finish the transition first
                await saving
                self._signed_in(token)
                raise
        except asyncio.CancelledError:
            if self.state.value is SignInState.EXCHANGING_CODE:
                self._move(SignInState.IDLE)
            raise
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self.is_loading.publish(False)

        self._signed_in(token)
        return token

    def status(self) -> SignInStatus:
        state = self.state.value
        return SignInStatus(
            state=state,
            signed_in=state is SignInState.SIGNED_IN,
            message=self.last_message if state is SignInState.FAILED else None,
        )

    def close(self) -> None:
        super().close()
        self.state.close()
        self.access_token.close()
