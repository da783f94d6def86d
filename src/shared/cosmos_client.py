# Cosmos DB access for the document store

import os
import logging
import backoff
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional
from azure.cosmos import CosmosClient, exceptions
from azure.cosmos.container import ContainerProxy
from src.specs.common.errors import ConfigurationError

_LOGGER = logging.getLogger("campaignengine.cosmos")

# Throttled (429) and unavailable (503) responses are worth another attempt
RETRYABLE_STATUS = (429, 503)

MAX_RETRIES = 3
OPERATION_TIMEOUT = 10.0    # seconds across all attempts


class RetryableCosmosError(Exception):
    """A Cosmos DB call failed with a transient status and may be retried"""
    pass


_retrying = backoff.on_exception(
    backoff.expo,
    RetryableCosmosError,
    max_tries=MAX_RETRIES,
    max_time=OPERATION_TIMEOUT,
)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except exceptions.CosmosHttpResponseError as e:
        if e.status_code in RETRYABLE_STATUS:
            _LOGGER.warning("cosmos: retryable status=%s while %s", e.status_code, action)
            raise RetryableCosmosError(f"Retryable error {action}: {e}") from e
        raise


class CosmosDBClient:
    """Thin wrapper over one Cosmos database; containers are partitioned on /id."""

    def __init__(self, connection_string: Optional[str] = None, database_name: Optional[str] = None):
        self.connection_string = connection_string or os.environ.get("COSMOS_DB_CONNECTION_STRING")
        self.database_name = database_name or os.environ.get("COSMOS_DB_NAME")

        if not self.connection_string or not self.database_name:
            raise ConfigurationError("Missing Cosmos DB connection string or database name")

        self.client = CosmosClient.from_connection_string(self.connection_string, retry_total=MAX_RETRIES)
        self.database = self.client.get_database_client(self.database_name)
        self._containers: Dict[str, ContainerProxy] = {}

    @staticmethod
    def container_name_for(name: str) -> str:
        """COSMOS_DB_CONTAINER_<NAME> overrides the logical container name."""
        return os.environ.get(f"COSMOS_DB_CONTAINER_{name.upper()}") or name

    def get_container(self, container_name: str) -> ContainerProxy:
        container = self._containers.get(container_name)
        if container is None:
            container = self.database.get_container_client(self.container_name_for(container_name))
            self._containers[container_name] = container
        return container

    @_retrying
    def get_item(self, container_name: str, item_id: str) -> Optional[Dict[str, Any]]:
        """
        Point-read an item by id

        Returns:
            The stored item, or None when it does not exist
        """
        container = self.get_container(container_name)
        try:
            with _translate_errors(f"reading '{item_id}' from '{container_name}'"):
                return container.read_item(item=item_id, partition_key=item_id)
        except exceptions.CosmosResourceNotFoundError:
            _LOGGER.debug("cosmos: item not found container=%s id=%s", container_name, item_id)
            return None

    @_retrying
    def query_items(
        self,
        container_name: str,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Run a parameterised cross-partition query

        Args:
            container_name: Logical container name
            query: SQL text using @name placeholders
            parameters: [{"name": "@p0", "value": ...}, ...]
        """
        container = self.get_container(container_name)
        with _translate_errors(f"querying '{container_name}'"):
            return list(container.query_items(
                query=query,
                parameters=parameters or [],
                enable_cross_partition_query=True
            ))

    @_retrying
    def create_item(self, container_name: str, item: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a new item; Cosmos rejects an existing id with 409."""
        container = self.get_container(container_name)
        with _translate_errors(f"creating '{item.get('id')}' in '{container_name}'"):
            return container.create_item(body=item)

    @_retrying
    def upsert_item(self, container_name: str, item: Dict[str, Any]) -> Dict[str, Any]:
        container = self.get_container(container_name)
        with _translate_errors(f"upserting '{item.get('id')}' in '{container_name}'"):
            return container.upsert_item(body=item)

    @_retrying
    def delete_item(self, container_name: str, item_id: str) -> bool:
        """Delete an item; returns False when it was already gone."""
        container = self.get_container(container_name)
        try:
            with _translate_errors(f"deleting '{item_id}' from '{container_name}'"):
                container.delete_item(item=item_id, partition_key=item_id)
        except exceptions.CosmosResourceNotFoundError:
            _LOGGER.info("cosmos: delete of missing item container=%s id=%s", container_name, item_id)
            return False
        return True


@lru_cache(maxsize=1)
def get_cosmos_client() -> CosmosDBClient:
    """Process-wide CosmosDBClient built from environment settings"""
    return CosmosDBClient()
