"""
Figma REST access and the fact provider backed by it.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from .config import CodegenSettings
from .facts import DictFactProvider, TokenRef

logger = logging.getLogger(__name__)


class FigmaClient:
    """Authenticated GET requests against the Figma REST API."""

    def __init__(
        self,
        settings: CodegenSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.token = settings.require_token()
        self.transport = transport

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug("GET %s %s", endpoint, params or '')
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.get(
                f"{self.settings.api_base}/{endpoint}",
                headers={"X-Figma-Token": self.token},
                params=params,
                timeout=self.settings.request_timeout,
            )
            response.raise_for_status()
            return response.json()

    async def get_nodes(self, file_key: str, node_id: str) -> Dict[str, Any]:
        return await self.get(f"files/{file_key}/nodes", params={"ids": node_id})

    async def get_local_variables(self, file_key: str) -> Dict[str, Any]:
        return await self.get(f"files/{file_key}/variables/local")


class FigmaRestFactProvider(DictFactProvider):
    """Dict provider that fetches unknown nodes and token names on demand."""

    def __init__(self, client: FigmaClient, file_key: str):
        super().__init__()
        self.client = client
        self.file_key = file_key
        self.components: Dict[str, Dict[str, Any]] = {}
        self._variables: Optional['asyncio.Future[None]'] = None
        self._fetches: Dict[str, 'asyncio.Future[Optional[str]]'] = {}

    async def load(self, node_id: str) -> Optional[str]:
        """Fetch ``node_id`` with its subtree. Returns the id, or None when Figma has no such node."""
        pending = self._fetches.get(node_id)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch(node_id))
            self._fetches[node_id] = pending
        return await pending

    async def _fetch(self, node_id: str) -> Optional[str]:
        data = await self.client.get_nodes(self.file_key, node_id)
        entry = (data.get('nodes') or {}).get(node_id)
        if not entry or not entry.get('document'):
            logger.warning("Node %s not found in file %s", node_id, self.file_key)
            return None
        self.styles.update(entry.get('styles') or {})
        self.components.update(entry.get('components') or {})

        document = entry['document']
        set_id = (self.components.get(node_id) or {}).get('componentSetId')
        if document.get('type') == 'COMPONENT' and set_id and set_id not in self:
            # Load the whole set so the variant keeps its parent
            if await self.load(set_id) and node_id in self:
                return node_id
        self.add_subtree(document)
        return node_id

    async def resolve_node_by_id(self, node_id: str) -> Optional[str]:
        if node_id in self:
            return node_id
        return await self.load(node_id)

    async def resolve_token(self, token_id: str) -> Optional[TokenRef]:
        token = await super().resolve_token(token_id)
        if token is not None:
            return token
        if self._variables is None:
            self._variables = asyncio.ensure_future(self._load_variables())
        await self._variables
        return await super().resolve_token(token_id)

    async def _load_variables(self) -> None:
        try:
            data = await self.client.get_local_variables(self.file_key)
        except httpx.HTTPError as e:
            # Variables API needs an Enterprise plan; fall back to file styles
            logger.warning("Could not load variables for %s: %s", self.file_key, e)
            return
        variables = (data.get('meta') or {}).get('variables') or {}
        self.variables.update(variables)
        logger.debug("Loaded %d variables for %s", len(variables), self.file_key)
