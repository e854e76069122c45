import logging
import time
import uuid
from typing import Callable, Dict, List, Optional

from fastapi import Depends, HTTPException

from variant_engine.clients.gateway import VariantPersistenceGateway
from variant_engine.clients.product_variant_client import ProductVariantClient
from variant_engine.core.config import settings
from variant_engine.schemas.variant import Variant
from variant_engine.services.variant_manager import VariantLifecycleController

logger = logging.getLogger(__name__)


class VariantSessionRegistry:
    """
    In-process editing sessions, one controller per open product editor.

    Editors are expected to DELETE their session when they close. Sessions
    left behind are dropped once they have not been used for
    ``idle_timeout`` seconds, unless a save or delete is still in flight.
    """

    def __init__(self, idle_timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._controllers: Dict[str, VariantLifecycleController] = {}
        self._last_used: Dict[str, float] = {}
        self.idle_timeout = settings.SESSION_IDLE_TIMEOUT_SECONDS if idle_timeout is None else idle_timeout
        self._clock = clock

    def __len__(self) -> int:
        return len(self._controllers)

    def open(
        self,
        gateway: VariantPersistenceGateway,
        product_id: Optional[str] = None,
        variants: Optional[List[Variant]] = None,
    ) -> str:
        self.expire_idle()
        session_id = uuid.uuid4().hex
        self._controllers[session_id] = VariantLifecycleController(gateway, product_id=product_id, variants=variants)
        self._last_used[session_id] = self._clock()
        logger.info("Variant editing session opened", extra={"session_id": session_id, "product_id": product_id})
        return session_id

    def get(self, session_id: str) -> VariantLifecycleController:
        self.expire_idle()
        controller = self._controllers.get(session_id)
        if controller is None:
            raise HTTPException(status_code=404, detail=f"Variant session {session_id} not found")
        self._last_used[session_id] = self._clock()
        return controller

    def close(self, session_id: str) -> None:
        if self._controllers.pop(session_id, None) is None:
            raise HTTPException(status_code=404, detail=f"Variant session {session_id} not found")
        self._last_used.pop(session_id, None)
        logger.info("Variant editing session closed", extra={"session_id": session_id})

    def expire_idle(self) -> List[str]:
        if not self.idle_timeout:
            return []
        now = self._clock()
        expired = [
            session_id for session_id, last_used in self._last_used.items()
            if now - last_used > self.idle_timeout and self._controllers[session_id].session.is_idle
        ]
        for session_id in expired:
            del self._controllers[session_id]
            del self._last_used[session_id]
        if expired:
            logger.info("Idle variant sessions expired", extra={"count": len(expired)})
        return expired


session_registry = VariantSessionRegistry()


def get_session_registry() -> VariantSessionRegistry:
    return session_registry


def get_gateway() -> VariantPersistenceGateway:
    return ProductVariantClient()


def get_controller(
    session_id: str,
    registry: VariantSessionRegistry = Depends(get_session_registry),
) -> VariantLifecycleController:
    return registry.get(session_id)
