"""Application state — the process-wide components, built once per app.

Owns the recency suppressor, response cache, store circuit breaker, outbound
HTTP client, collaborator connectors and the task supervisor. Created in the
FastAPI lifespan, torn down (caches cleared, tasks drained, client closed) on
shutdown. Routers reach it through dependencies.get_state.
"""

from datetime import datetime

from loguru import logger

from .cache.recency import RecencySuppressor
from .cache.response_cache import ResponseCache, connect_redis
from .circuit_breaker import CircuitBreaker
from .config import Settings
from .connectors import BrokerClient, CrmClient, DirectoryClient
from .errors import DatabaseError
from .http_client import build_client, close_client
from .schemas.webhooks import RawEvent
from .services.enrichment_client import EnrichmentClient
from .services.pipeline import EnrichmentPipeline
from .tasks import TaskSupervisor


class AppState:
    def __init__(
        self,
        settings: Settings,
        session_factory,
        directory,
        broker,
        crm,
        recency: RecencySuppressor,
        response_cache: ResponseCache,
        breaker: CircuitBreaker,
        supervisor: TaskSupervisor | None = None,
        http=None,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.directory = directory
        self.broker = broker
        self.crm = crm
        self.recency = recency
        self.response_cache = response_cache
        self.breaker = breaker
        self.supervisor = supervisor or TaskSupervisor()
        self.http = http
        self.pipeline = EnrichmentPipeline(
            session_factory=session_factory,
            directory=directory,
            enrichment=EnrichmentClient(broker, response_cache),
            crm=crm,
            recency=recency,
            breaker=breaker,
        )

    @classmethod
    def build(cls, settings: Settings, session_factory) -> "AppState":
        http = build_client(settings.http_timeout_seconds)
        redis_client = connect_redis(settings.redis_url) if settings.cache_backend == "redis" else None
        return cls(
            settings=settings,
            session_factory=session_factory,
            directory=DirectoryClient(
                http,
                settings.directory_base_url,
                settings.directory_user,
                settings.directory_password,
            ),
            broker=BrokerClient(http, settings.broker_base_url, settings.broker_token),
            crm=CrmClient(http, settings.crm_base_url, settings.crm_token),
            recency=RecencySuppressor(
                cooldown_seconds=settings.recency_cooldown_seconds,
                ttl_seconds=settings.recency_ttl_seconds,
                max_entries=settings.recency_max_entries,
            ),
            response_cache=ResponseCache(
                ttl_seconds=settings.response_cache_ttl_seconds,
                max_entries=settings.response_cache_max_entries,
                redis_client=redis_client,
            ),
            breaker=CircuitBreaker(
                "store",
                fail_max=settings.store_breaker_fail_max,
                reset_timeout=settings.store_breaker_reset_seconds,
                failure_types=(DatabaseError,),
            ),
            http=http,
        )

    def spawn_pipeline(self, lead_id: str, occurred_at: datetime, event: RawEvent) -> None:
        self.supervisor.spawn(
            f"event:{lead_id}@{occurred_at.isoformat()}",
            self.pipeline.run(lead_id, occurred_at, event),
        )

    async def aclose(self) -> None:
        await self.supervisor.shutdown()
        self.recency.clear()
        self.response_cache.clear()
        if self.http is not None:
            await close_client(self.http)
        logger.info("Application state closed")
