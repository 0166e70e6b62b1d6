from __future__ import annotations

import asyncio
import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Callable, Dict, List, Mapping, Sequence, TypeVar

from .configuration import DashboardSettings
from .exceptions import BoardServiceError, TrelloAuthError, TrelloRequestError
from .models import TrelloCard, TrelloLabel, TrelloList, TrelloMember

logger = logging.getLogger(__name__)

TRELLO_API_BASE = "https://api.trello.com/1"
CARD_FIELDS = "name,desc,idList,idMembers,idLabels,due,dueComplete,dateLastActivity,shortUrl"

T = TypeVar("T")


class BoardRepository:
    """
    Interface for loading the raw board entities.

    Implementations must raise ``TrelloAuthError`` when credentials are
    rejected and ``BoardServiceError`` (or a subclass) for any other failure.
    """

    async def get_lists(self) -> Sequence[TrelloList]:
        raise NotImplementedError

    async def get_cards(self) -> Sequence[TrelloCard]:
        raise NotImplementedError

    async def get_members(self) -> Sequence[TrelloMember]:
        raise NotImplementedError

    async def get_labels(self) -> Sequence[TrelloLabel]:
        raise NotImplementedError


class TrelloBoardRepository(BoardRepository):
    """
    Read-only Trello REST client for one board.

    Each call is a blocking ``urllib`` request run on a worker thread, bounded
    by ``timeout_seconds``. Nothing is retried here; a timeout is reported
    like any other request failure.
    """

    def __init__(
        self,
        api_key: str,
        token: str,
        board_id: str,
        timeout_seconds: float = 15.0,
        base_url: str = TRELLO_API_BASE,
    ):
        self.api_key = api_key
        self.token = token
        self.board_id = board_id
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")

    async def get_lists(self) -> Sequence[TrelloList]:
        return await self._fetch(f"/boards/{self.board_id}/lists", {"filter": "open"}, TrelloList.from_api)

    async def get_cards(self) -> Sequence[TrelloCard]:
        params = {"fields": CARD_FIELDS, "checklists": "all", "filter": "open"}
        return await self._fetch(f"/boards/{self.board_id}/cards", params, TrelloCard.from_api)

    async def get_members(self) -> Sequence[TrelloMember]:
        params = {"fields": "fullName,username,avatarUrl"}
        return await self._fetch(f"/boards/{self.board_id}/members", params, TrelloMember.from_api)

    async def get_labels(self) -> Sequence[TrelloLabel]:
        params = {"fields": "name,color"}
        return await self._fetch(f"/boards/{self.board_id}/labels", params, TrelloLabel.from_api)

    async def _fetch(
        self,
        endpoint: str,
        params: Dict[str, str],
        convert: Callable[[Mapping[str, Any]], T],
    ) -> List[T]:
        payload = await asyncio.to_thread(self._get, endpoint, params)
        if not isinstance(payload, list):
            raise TrelloRequestError(endpoint, "expected a JSON array")
        try:
            return [convert(item) for item in payload]
        except (KeyError, TypeError, ValueError) as exc:
            raise TrelloRequestError(endpoint, f"unexpected payload shape ({exc})") from exc

    def _build_url(self, endpoint: str, params: Dict[str, str]) -> str:
        query = {"key": self.api_key, "token": self.token, **params}
        return f"{self.base_url}{endpoint}?{urllib.parse.urlencode(query)}"

    def _get(self, endpoint: str, params: Dict[str, str]) -> Any:
        req = urllib.request.Request(
            self._build_url(endpoint, params),
            headers={"Accept": "application/json"},
            method="GET",
        )
        logger.debug("GET %s", endpoint)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            if exc.code in (401, 403):
                raise TrelloAuthError(endpoint, upstream_status=exc.code) from exc
            raise TrelloRequestError(endpoint, str(exc.reason), upstream_status=exc.code) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise TrelloRequestError(endpoint, f"timed out after {self.timeout_seconds}s") from exc
        except urllib.error.URLError as exc:
            raise TrelloRequestError(endpoint, str(exc.reason)) from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise TrelloRequestError(endpoint, "invalid JSON in response") from exc


class InMemoryBoardRepository(BoardRepository):
    """BoardRepository backed by in-memory collections. For tests and demos."""

    def __init__(
        self,
        lists: Sequence[TrelloList] = (),
        cards: Sequence[TrelloCard] = (),
        members: Sequence[TrelloMember] = (),
        labels: Sequence[TrelloLabel] = (),
    ):
        self.lists = list(lists)
        self.cards = list(cards)
        self.members = list(members)
        self.labels = list(labels)
        self.failures: Dict[str, BoardServiceError] = {}
        self.calls: Dict[str, int] = {"lists": 0, "cards": 0, "members": 0, "labels": 0}

    def fail_on(self, resource: str, error: BoardServiceError) -> None:
        self.failures[resource] = error

    async def _serve(self, resource: str, items: List[T]) -> List[T]:
        self.calls[resource] += 1
        await asyncio.sleep(0)
        error = self.failures.get(resource)
        if error is not None:
            raise error
        return list(items)

    async def get_lists(self) -> Sequence[TrelloList]:
        return await self._serve("lists", self.lists)

    async def get_cards(self) -> Sequence[TrelloCard]:
        return await self._serve("cards", self.cards)

    async def get_members(self) -> Sequence[TrelloMember]:
        return await self._serve("members", self.members)

    async def get_labels(self) -> Sequence[TrelloLabel]:
        return await self._serve("labels", self.labels)


def build_repository(settings: DashboardSettings) -> BoardRepository:
    return TrelloBoardRepository(
        api_key=settings.trello_api_key,
        token=settings.trello_token,
        board_id=settings.trello_board_id,
        timeout_seconds=settings.request_timeout_seconds,
    )
