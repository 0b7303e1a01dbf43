r"""Synchronous context manager client for the Basecamp API.

``BasecampClient`` ties together the configuration, the credential store,
the token exchange, the request executor and the uploader, and exposes one
accessor per API resource. The accessors raise the exceptions of
``bcxapi.exceptions`` instead of returning outcomes; use ``executor`` and
``uploader`` directly to branch on outcomes.
"""

from __future__ import annotations

__all__ = ["BasecampClient"]

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlencode

import httpx

from bcxapi.auth import TokenExchanger, TokenStore
from bcxapi.exceptions import UnauthorizedError
from bcxapi.executor import RequestExecutor
from bcxapi.outcomes import raise_for_outcome
from bcxapi.upload import MultipartUploader

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType
    from typing import Self

    from bcxapi.auth import Credential
    from bcxapi.cache import ResponseCache
    from bcxapi.core.config import ClientConfig
    from bcxapi.json_value import JsonValue
    from bcxapi.outcomes import Success

logger: logging.Logger = logging.getLogger(__name__)

# Lower bound used when an event listing is requested without ``since``
EPOCH_START = datetime(1, 1, 1, tzinfo=timezone.utc)


def _format_since(since: datetime) -> str:
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return since.isoformat(timespec="minutes")


class BasecampClient:
    r"""Synchronous context manager for the Basecamp API.

    When no ``httpx.Client`` is supplied, one is created with
    ``config.timeout`` and closed when the context exits (or on
    ``close()``). A supplied client is never closed by this class.

    Args:
        config: The application configuration.
        credential: Optional initial credential, either a ``Credential``
            or a decoded token response.
        cache: Optional response cache. If ``None``, an in-memory cache
            owned by this client is used.
        client: Optional ``httpx.Client`` used as transport.

    Example:
        ```pycon
        >>> from bcxapi import BasecampClient
        >>> from bcxapi.core.config import ClientConfig
        >>> config = ClientConfig(
        ...     client_id="id",
        ...     client_secret="secret",
        ...     redirect_uri="https://example.com/callback",
        ...     user_agent="MyApp (ops@example.com)",
        ... )
        >>> with BasecampClient(config) as client:  # doctest: +SKIP
        ...     client.acquire_token("code-from-redirect")
        ...     projects = client.get_projects(account_id=999)
        ...

        ```
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        credential: Credential | Mapping[str, Any] | None = None,
        cache: ResponseCache | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._close_client = client is None
        self._client: httpx.Client = client or httpx.Client(timeout=config.timeout)
        self._tokens = TokenStore(credential)
        self._exchanger = TokenExchanger(config, self._tokens, self._client)
        self._executor = RequestExecutor(
            self._client, self._tokens, user_agent=config.user_agent, cache=cache
        )
        self._uploader = MultipartUploader(self._executor)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying ``httpx.Client`` if this client created
        it."""
        if self._close_client:
            self._client.close()
            self._close_client = False
            logger.debug("Closed the owned httpx client")

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def tokens(self) -> TokenStore:
        return self._tokens

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    @property
    def uploader(self) -> MultipartUploader:
        return self._uploader

    @property
    def is_authenticated(self) -> bool:
        return self._tokens.is_authenticated

    ################
    #     Auth     #
    ################

    def authorization_url(self, extra_params: Mapping[str, str] | None = None) -> str:
        """Build the URL users must visit to grant the application access.

        See ``TokenExchanger.authorization_url``.
        """
        return self._exchanger.authorization_url(extra_params)

    def acquire_token(self, code: str) -> Credential:
        """Exchange an authorization code for a credential.

        Raises:
            UnauthorizedError: If the exchange fails for any reason.
        """
        return self._exchanger.acquire(code)

    def refresh_token(self) -> Credential:
        """Replace the credential using the stored refresh token.

        Call it after a ``TokenExpiredError``, then re-issue the request.

        Raises:
            UnauthorizedError: If the refresh fails for any reason.
        """
        return self._exchanger.refresh()

    #################
    #    Helpers    #
    #################

    def _require_authentication(self) -> None:
        if not self._tokens.is_authenticated:
            msg = "The client is not authenticated; acquire a token first."
            raise UnauthorizedError(msg)

    def _url(self, account_id: int, path: str) -> str:
        return self._config.resource_url(account_id, path)

    def _get(self, url: str) -> JsonValue:
        self._require_authentication()
        outcome = raise_for_outcome(self._executor.get(url), method="GET", url=url)
        return outcome.data

    def _post(self, url: str, payload: Any) -> Success:
        self._require_authentication()
        outcome = raise_for_outcome(self._executor.post(url, payload), method="POST", url=url)
        # POST never yields NotModified
        return cast("Success", outcome)

    def _events(self, account_id: int, path: str, since: datetime | None, page: int) -> JsonValue:
        query = {"since": _format_since(since or EPOCH_START)}
        if page != 1:
            query["page"] = str(page)
        return self._get(f"{self._url(account_id, path)}?{urlencode(query)}")

    ###################
    #    Accessors    #
    ###################

    def get_accounts(self) -> JsonValue:
        """Return the accounts the credential gives access to."""
        return self._get(self._config.accounts_endpoint)

    def get_projects(self, account_id: int, archived: bool = False) -> JsonValue:
        r"""Return the active projects of an account, or the archived ones.

        Args:
            account_id: The account id.
            archived: If ``True``, list archived projects instead.

        Returns:
            The decoded list of projects.

        Raises:
            UnauthorizedError: If the client is not authenticated or the
                credential is rejected.
            TokenExpiredError: If the access token must be refreshed.
            RateLimitExceededError: If the rate limit is exceeded.
            ForbiddenError: If access is denied.
            GeneralApiError: For any other error status.
            TransportFailureError: If the exchange could not complete.
        """
        return self._get(self._url(account_id, "projects/archived" if archived else "projects"))

    def get_project(self, account_id: int, project_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}"))

    def get_accesses_for_project(self, account_id: int, project_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/accesses"))

    def get_accesses_for_calendar(self, account_id: int, calendar_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"calendars/{calendar_id}/accesses"))

    def get_calendars(self, account_id: int) -> JsonValue:
        return self._get(self._url(account_id, "calendars"))

    def get_calendar(self, account_id: int, calendar_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"calendars/{calendar_id}"))

    def get_people(self, account_id: int) -> JsonValue:
        return self._get(self._url(account_id, "people"))

    def get_person(self, account_id: int, person_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"people/{person_id}"))

    def get_todo(self, account_id: int, project_id: int, todo_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/todos/{todo_id}"))

    def get_documents(self, account_id: int, project_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/documents"))

    def get_document(self, account_id: int, project_id: int, document_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/documents/{document_id}"))

    def get_topics(self, account_id: int, project_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/topics"))

    def get_attachments(self, account_id: int, project_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/attachments"))

    def get_upload(self, account_id: int, project_id: int, upload_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/uploads/{upload_id}"))

    def get_todo_lists(self, account_id: int, project_id: int, completed: bool = False) -> JsonValue:
        """Return the remaining todo lists of a project, or the completed
        ones."""
        path = f"projects/{project_id}/todolists"
        return self._get(self._url(account_id, f"{path}/completed" if completed else path))

    def get_todo_lists_with_assigned_todos(self, account_id: int, person_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"people/{person_id}/assigned_todos"))

    def get_todo_list(self, account_id: int, project_id: int, todo_list_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/todolists/{todo_list_id}"))

    def get_message(self, account_id: int, project_id: int, message_id: int) -> JsonValue:
        return self._get(self._url(account_id, f"projects/{project_id}/messages/{message_id}"))

    def get_global_events(
        self, account_id: int, since: datetime | None = None, page: int = 1
    ) -> JsonValue:
        r"""Return the events of an account since a point in time.

        Args:
            account_id: The account id.
            since: Only events after this time are listed. Naive datetimes
                are taken as UTC. Defaults to the earliest representable
                time.
            page: The page of results; the service returns 50 events per
                page.

        Returns:
            The decoded list of events.
        """
        return self._events(account_id, "events", since, page)

    def get_project_events(
        self, account_id: int, project_id: int, since: datetime | None = None, page: int = 1
    ) -> JsonValue:
        return self._events(account_id, f"projects/{project_id}/events", since, page)

    def get_person_events(
        self, account_id: int, person_id: int, since: datetime | None = None, page: int = 1
    ) -> JsonValue:
        return self._events(account_id, f"people/{person_id}/events", since, page)

    def get_calendar_events_for_project(
        self, account_id: int, project_id: int, past: bool = False
    ) -> JsonValue:
        path = f"projects/{project_id}/calendar_events"
        return self._get(self._url(account_id, f"{path}/past" if past else path))

    def get_calendar_events(self, account_id: int, calendar_id: int, past: bool = False) -> JsonValue:
        path = f"calendars/{calendar_id}/calendar_events"
        return self._get(self._url(account_id, f"{path}/past" if past else path))

    def get_calendar_event_for_project(
        self, account_id: int, project_id: int, calendar_event_id: int
    ) -> JsonValue:
        return self._get(
            self._url(account_id, f"projects/{project_id}/calendar_events/{calendar_event_id}")
        )

    def get_calendar_event(
        self, account_id: int, calendar_id: int, calendar_event_id: int
    ) -> JsonValue:
        return self._get(
            self._url(account_id, f"calendars/{calendar_id}/calendar_events/{calendar_event_id}")
        )

    ##################
    #    Creation    #
    ##################

    def create_project(self, account_id: int, name: str, description: str) -> Success:
        r"""Create a project.

        Args:
            account_id: The account id.
            name: The name of the project.
            description: The description of the project.

        Returns:
            ``Success`` holding the created project and, in ``location``,
            its URL.
        """
        return self._post(
            self._url(account_id, "projects"), {"name": name, "description": description}
        )

    def grant_access(
        self,
        account_id: int,
        project_id: int,
        ids: Sequence[int] | None = None,
        email_addresses: Sequence[str] | None = None,
    ) -> None:
        r"""Grant people access to a project.

        Args:
            account_id: The account id.
            project_id: The project id.
            ids: Ids of existing people.
            email_addresses: Email addresses of people to invite.

        Raises:
            ValueError: If neither ``ids`` nor ``email_addresses`` is given.
        """
        if ids is None and email_addresses is None:
            msg = "grant_access requires ids or email_addresses"
            raise ValueError(msg)
        payload: dict[str, list[Any]] = {}
        if ids is not None:
            payload["ids"] = list(ids)
        if email_addresses is not None:
            payload["email_addresses"] = list(email_addresses)
        self._post(self._url(account_id, f"projects/{project_id}/accesses"), payload)

    def create_attachments(self, account_id: int, files: Mapping[str, bytes]) -> dict[str, str]:
        r"""Upload files as attachments, one request per file.

        The returned tokens attach the files to uploads, messages or
        comments. If any file fails, the error of that file is raised and
        no token is returned.

        Args:
            account_id: The account id.
            files: File names (with extension) mapped to their content.

        Returns:
            The token of every file, keyed by file name.
        """
        self._require_authentication()
        url = self._url(account_id, "attachments")
        outcome = raise_for_outcome(self._uploader.upload(url, files), method="POST", url=url)
        return {name: token.as_str() for name, token in outcome.data.as_dict().items()}

    def create_file_upload_for_project(
        self,
        account_id: int,
        project_id: int,
        token: str,
        content: str,
        file_name: str,
        subscribers: Sequence[int] | None = None,
    ) -> Success:
        r"""Create an upload in a project from an attachment token.

        Args:
            account_id: The account id.
            project_id: The project id.
            token: The attachment token returned by ``create_attachments``.
            content: The text accompanying the upload.
            file_name: The name under which the file is shown.
            subscribers: Ids of the people notified of the upload.

        Returns:
            ``Success`` holding the created upload and its ``location``.
        """
        payload = {
            "content": content,
            "attachments": [{"token": token, "name": file_name}],
            "subscribers": list(subscribers or []),
        }
        return self._post(self._url(account_id, f"projects/{project_id}/uploads"), payload)
