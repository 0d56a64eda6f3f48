"""Neo4j status-query client over the async driver. One driver per reconciliation pass."""

import logging
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase

from cluster_autoscaler.config.settings import AutoscalerSettings, get_settings
from cluster_autoscaler.domain.schemas.cluster import ClusterSpec

logger = logging.getLogger(__name__)


def client_uri(cluster: ClusterSpec, settings: AutoscalerSettings) -> str:
    return (
        f"{settings.neo4j_scheme}://{cluster.name}-client.{cluster.namespace}"
        f".svc.cluster.local:{settings.neo4j_port}"
    )


class Neo4jQueryClient:
    def __init__(self, driver: AsyncDriver) -> None:
        self.driver = driver

    async def run(self, query: str) -> list[dict[str, Any]]:
        async with self.driver.session() as session:
            result = await session.run(query)
            return await result.data()

    async def close(self) -> None:
        await self.driver.close()


def neo4j_client_factory(settings: AutoscalerSettings | None = None):
    """DatabaseClientFactory building a client for the cluster's client service."""
    settings = settings or get_settings()

    def factory(cluster: ClusterSpec) -> Neo4jQueryClient:
        uri = client_uri(cluster, settings)
        driver = AsyncGraphDatabase.driver(uri, auth=(settings.neo4j_username, settings.neo4j_password))
        logger.debug("neo4j_driver_created", extra={"namespace": cluster.namespace})
        return Neo4jQueryClient(driver)

    return factory
