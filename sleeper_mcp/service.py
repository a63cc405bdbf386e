"""
Operation dispatch for the Sleeper MCP Server.

``SleeperService.resolve(name, params)`` is the single entry point used by
every front end: validate the parameters, build the upstream path, fetch
through the router, enrich the result and wrap it in the standard response
envelope. Failures come back as error envelopes, never as exceptions.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config_manager import ConfigurationModel
from .enrichment import EnrichmentEngine
from .errors import (
    SleeperMCPError, UnknownOperationError, ErrorType,
    create_success_response, error_response_from_exception, handle_operation_errors
)
from .param_validator import validate_or_raise
from .player_tools import PLAYER_OPERATIONS
from .reference_store import ReferenceCache, ReferenceStore, create_reference_store
from .result_cache import ResultCache
from .router import RequestRouter
from .sleeper_tools import Operation, SLEEPER_OPERATIONS
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)

ALL_OPERATIONS: List[Operation] = SLEEPER_OPERATIONS + PLAYER_OPERATIONS


class SleeperService:
    """Owns the router and enrichment engine for one process."""

    def __init__(
        self,
        router: RequestRouter,
        enrichment: Optional[EnrichmentEngine] = None,
        operations: Optional[Iterable[Operation]] = None,
        default_domain: str = "nfl",
        fetch_directory_on_miss: bool = True
    ):
        self.router = router
        self.default_domain = default_domain
        self.fetch_directory_on_miss = fetch_directory_on_miss
        self.enrichment = enrichment or EnrichmentEngine(self._directory_for_enrichment)
        self.operations: Dict[str, Operation] = {op.name: op for op in (operations or ALL_OPERATIONS)}

    @classmethod
    def from_config(
        cls,
        config: ConfigurationModel,
        reference_store: Optional[ReferenceStore] = None,
        clock: Callable[[], float] = time.time
    ) -> "SleeperService":
        """Construct caches, store, client and router from configuration."""
        store = reference_store or create_reference_store(config.reference)
        router = RequestRouter(
            result_cache=ResultCache(clock=clock),
            reference_cache=ReferenceCache(store, clock=clock),
            upstream=UpstreamClient(config.upstream.base_url),
        )
        service = cls(
            router,
            default_domain=config.reference.default_domain,
            fetch_directory_on_miss=config.enrichment.fetch_directory_on_miss,
        )
        service.enrichment.enabled = config.enrichment.enabled
        logger.info(
            f"Sleeper service ready: {len(service.operations)} operations, "
            f"reference backend={config.reference.backend}, enrichment={'on' if config.enrichment.enabled else 'off'}"
        )
        return service

    async def _directory_for_enrichment(self, domain: str):
        if self.fetch_directory_on_miss:
            return await self.router.load_directory(domain)
        return await self.router.cached_directory(domain)

    def get_operation(self, name: str) -> Operation:
        try:
            return self.operations[name]
        except KeyError:
            raise UnknownOperationError(name)

    def list_operations(self) -> List[Dict[str, Any]]:
        """Catalog listing: name, description and parameter names per operation."""
        return [
            {
                "name": op.name,
                "description": op.description,
                "parameters": {
                    param: {"required": bool(spec.get("required")), "default": spec.get("default")}
                    for param, spec in op.schema.items()
                },
            }
            for op in self.operations.values()
        ]

    async def resolve(self, name: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run operation ``name`` and return a success or error envelope."""
        try:
            operation = self.get_operation(name)
        except UnknownOperationError as e:
            return error_response_from_exception(e, operation_name=name)

        run = handle_operation_errors(operation.default_data(), operation.name)(self._run)
        return await run(operation, params or {})

    async def _run(self, operation: Operation, params: Dict[str, Any]) -> Dict[str, Any]:
        validated = validate_or_raise(operation.schema, params)
        if operation.handler is not None:
            payload = await operation.handler(self, validated)
        else:
            payload = await self._pass_through(operation, validated)
        return create_success_response(payload)

    async def _pass_through(self, operation: Operation, validated: Dict[str, Any]) -> Dict[str, Any]:
        path, query = operation.build_path(validated)
        data = await self.router.fetch(path, query)

        if data is None:
            if operation.empty_result is None:
                raise SleeperMCPError(f"No data returned for {path}", ErrorType.NOT_FOUND)
            data = operation.default_data()[operation.result_key]

        if operation.enrich:
            domain = validated.get("sport") or self.default_domain
            data = await self.enrichment.enrich(data, domain)

        payload = {operation.result_key: data}
        for param in operation.echo:
            payload[param] = validated.get(param)
        if operation.count and isinstance(data, list):
            payload["count"] = len(data)
        return payload
