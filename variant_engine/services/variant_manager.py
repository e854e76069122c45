# variant_engine/services/variant_manager.py
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from variant_engine.clients.gateway import VariantPersistenceGateway
from variant_engine.core.config import settings
from variant_engine.core.exceptions import (
    DuplicateVariantError,
    GatewayError,
    ImageLimitExceededError,
    InconsistentDifferentiatorsError,
    OperationInProgressError,
    ProductNotPersistedError,
    UnsavedVariantExistsError,
    VariantEngineError,
    VariantNotFoundError,
    VariantValidationError,
)
from variant_engine.schemas.variant import DifferentiatorSummary, Variant, VariantOperationResult, VariantPayload
from variant_engine.services.consistency_checker import check_consistency, summarize_differentiators
from variant_engine.services.duplicate_detector import find_duplicate_variant
from variant_engine.services.variant_session import VariantEditingSession

logger = logging.getLogger(__name__)

VariantInput = Union[Variant, Mapping[str, Any]]


class VariantLifecycleController:
    """
    Add / clone / save / delete / expand for the variants of one product.

    At most one unsaved variant may exist, and at most one save or delete may
    be in flight (``session.processing_index``). Saves are validated against
    the in-memory collection (duplicates, then label consistency) before the
    mutex is taken, so a rejected save never reaches the gateway. A save of
    the variant already being processed may proceed (updates only); the mutex
    is released once every gateway call for that index has settled.

    Every public operation returns a VariantOperationResult; rule violations
    are reported in it, not raised.
    """

    def __init__(
        self,
        gateway: VariantPersistenceGateway,
        product_id: Optional[str] = None,
        variants: Optional[List[Variant]] = None,
        session: Optional[VariantEditingSession] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.session = session or VariantEditingSession(product_id=product_id, variants=list(variants or []))
        self._clock = clock
        self.tracer = trace.get_tracer("variant_engine.services.VariantLifecycleController", "0.1.0")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _reject(self, error: VariantEngineError, span, index: Optional[int] = None) -> VariantOperationResult:
        log_extra = {
            "code": error.code,
            "product_id": self.session.product_id,
            "variant_index": index,
            "processing_index": self.session.processing_index,
        }
        if isinstance(error, GatewayError):
            logger.error(f"Variant operation failed: {error.message}", extra=log_extra)
        else:
            logger.warning(f"Variant operation rejected: {error.message}", extra=log_extra)
        if span.is_recording():
            span.set_attribute("app.rejection.code", error.code)
            span.set_status(Status(StatusCode.ERROR, error.message))
        return VariantOperationResult(
            ok=False,
            level=error.level,
            code=error.code,
            message=error.message,
            missing_attributes=getattr(error, "missing_attributes", []),
            variant_index=index,
            http_status=error.http_status,
        )

    def _success(self, message: str, index: Optional[int] = None, variant: Optional[Variant] = None) -> VariantOperationResult:
        return VariantOperationResult(ok=True, message=message, variant_index=index, variant=variant)

    def _new_temp_id(self) -> str:
        stamp = int(self._clock() * 1000)
        existing = {variant.id for variant in self.session.variants}
        while f"{settings.TEMP_ID_PREFIX}{stamp}" in existing:
            stamp += 1
        return f"{settings.TEMP_ID_PREFIX}{stamp}"

    def _ensure_can_add(self, action: str) -> None:
        if self.session.has_unsaved_variant:
            raise UnsavedVariantExistsError(action)
        if not self.session.is_idle:
            raise OperationInProgressError(self.session.processing_index)

    def _variant_at(self, index: int) -> Variant:
        if index < 0 or index >= len(self.session.variants):
            raise VariantNotFoundError(index)
        return self.session.variants[index]

    def _release(self, index: int) -> None:
        self.session.release(index)

    def _clamp_expanded(self) -> None:
        expanded = self.session.expanded_index
        if expanded is not None and expanded >= len(self.session.variants):
            self.session.expanded_index = None

    async def _refresh(self, apply_locally: Callable[[], None], saved_index: Optional[int] = None) -> bool:
        """
        Reload the collection from the gateway, keeping other unsaved drafts.

        If the reload itself fails the already accepted change is applied
        to the local collection instead.
        """
        drafts = [
            variant for i, variant in enumerate(self.session.variants)
            if variant.is_unsaved and i != saved_index
        ]
        try:
            fresh = await self.gateway.list_variants(self.session.product_id)
        except GatewayError as e:
            logger.warning("Variant refresh failed; applying change locally", extra={
                "product_id": self.session.product_id,
                "error": e.message,
            })
            apply_locally()
            self._clamp_expanded()
            return False

        self.session.variants = list(fresh) + drafts
        self._clamp_expanded()
        return True

    # ------------------------------------------------------------------
    # add / clone
    # ------------------------------------------------------------------

    def add_new_variant(self) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.add_new_variant") as span:
            try:
                self._ensure_can_add("adding a new one")
            except VariantEngineError as e:
                return self._reject(e, span)

            variant = Variant(id=self._new_temp_id(), price=0, cost_price=0, images=[], attribute_groups=[])
            self.session.variants.append(variant)
            index = len(self.session.variants) - 1
            span.set_attribute("app.variant.index", index)
            logger.info("New variant added", extra={"product_id": self.session.product_id, "variant_id": variant.id})
            return self._success("New variant added", index, variant)

    def clone_variant(self, source_id: str) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.clone_variant") as span:
            span.set_attribute("app.variant.source_id", str(source_id))
            try:
                self._ensure_can_add("cloning another one")
                source_index = self.session.index_of(source_id)
                if source_index is None:
                    raise VariantNotFoundError(source_id)
            except VariantEngineError as e:
                return self._reject(e, span)

            source = self.session.variants[source_index]
            clone = source.model_copy(deep=True, update={
                "id": self._new_temp_id(),
                "persisted_id": None,
                "sku": None,
                "name": f"{source.name}{settings.CLONE_NAME_SUFFIX}",
            })
            self.session.variants.append(clone)
            index = len(self.session.variants) - 1
            self.session.expanded_index = index
            logger.info("Variant cloned", extra={
                "product_id": self.session.product_id,
                "source_id": source_id,
                "variant_id": clone.id,
            })
            return self._success("Variant cloned successfully", index, clone)

    # ------------------------------------------------------------------
    # save
    # ------------------------------------------------------------------

    def _validate_save(self, candidate: Variant, index: int) -> None:
        session = self.session
        if not session.is_idle and session.processing_index != index:
            raise OperationInProgressError(session.processing_index)
        if session.processing_index == index:
            # a create for this variant is already running; a second one would
            # persist it twice
            stored = session.variants[index] if index < len(session.variants) else None
            if stored is None or stored.is_unsaved:
                raise OperationInProgressError(index)
        if index < 0 or index > len(session.variants):
            raise VariantNotFoundError(index)

        # the candidate is checked in place of the stored variant; nothing is
        # written to the collection until the gateway accepts it
        working = list(session.variants)
        if index == len(working):
            working.append(candidate)
        else:
            working[index] = candidate

        match = find_duplicate_variant(working, candidate, index)
        if match is not None:
            raise DuplicateVariantError(match.index, match.describe())

        report = check_consistency(working, index)
        if not report.is_valid:
            raise InconsistentDifferentiatorsError(report.missing_attributes)

        if not session.product_id:
            raise ProductNotPersistedError()

    async def save_variant(self, candidate: VariantInput, index: int) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.save_variant") as span:
            span.set_attribute("app.variant.index", index)
            try:
                candidate = _as_variant(candidate)
                self._validate_save(candidate, index)
                payload = _build_payload(candidate)
            except VariantEngineError as e:
                return self._reject(e, span, index)

            session = self.session
            stored = session.variants[index] if index < len(session.variants) else None
            persisted_id = stored.persisted_id if stored is not None else candidate.persisted_id

            session.acquire(index)
            try:
                if persisted_id is None:
                    span.add_event("CreatingVariant")
                    saved = await self.gateway.create_variant(session.product_id, payload)
                    message = "Variant added successfully"
                else:
                    span.add_event("UpdatingVariant", {"app.variant.persisted_id": persisted_id})
                    saved = await self.gateway.update_variant(session.product_id, persisted_id, payload)
                    message = "Variant updated successfully"

                def apply_locally():
                    if index < len(session.variants):
                        session.variants[index] = saved
                    else:
                        session.variants.append(saved)

                await self._refresh(apply_locally, saved_index=index)
            except GatewayError as e:
                return self._reject(e, span, index)
            finally:
                self._release(index)

            logger.info(message, extra={
                "product_id": session.product_id,
                "variant_index": index,
                "persisted_id": saved.persisted_id,
            })
            span.set_status(Status(StatusCode.OK))
            return self._success(message, index, saved)

    # ------------------------------------------------------------------
    # delete
    # ------------------------------------------------------------------

    async def delete_variant(self, variant_id: str) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.delete_variant") as span:
            span.set_attribute("app.variant.id", str(variant_id))
            session = self.session
            try:
                if not session.is_idle:
                    raise OperationInProgressError(session.processing_index)
                index = session.index_of(variant_id)
                if index is None:
                    raise VariantNotFoundError(variant_id)
                variant = session.variants[index]
                if variant.persisted_id is not None and not session.product_id:
                    raise ProductNotPersistedError()
            except VariantEngineError as e:
                return self._reject(e, span)

            span.set_attribute("app.variant.index", index)
            session.acquire(index)
            try:
                if variant.persisted_id is None:
                    # never persisted: no round trip
                    del session.variants[index]
                    session.shift_expanded_after_removal(index)
                    message = "Variant removed"
                else:
                    await self.gateway.delete_variant(session.product_id, variant.persisted_id)

                    def apply_locally():
                        session.variants = [v for v in session.variants if v.persisted_id != variant.persisted_id]

                    session.shift_expanded_after_removal(index)
                    await self._refresh(apply_locally)
                    message = "Variant deleted successfully"
            except GatewayError as e:
                return self._reject(e, span, index)
            finally:
                self._release(index)

            logger.info(message, extra={"product_id": session.product_id, "variant_id": variant_id})
            return self._success(message, index, variant)

    # ------------------------------------------------------------------
    # editor state
    # ------------------------------------------------------------------

    def toggle_expand(self, index: int) -> Optional[int]:
        """Expand ``index`` (collapsing any other); toggling the open one closes it."""
        if self.session.expanded_index == index:
            self.session.expanded_index = None
        else:
            self.session.expanded_index = index
        return self.session.expanded_index

    def update_variant_draft(self, index: int, variant: VariantInput) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.update_variant_draft") as span:
            span.set_attribute("app.variant.index", index)
            try:
                stored = self._variant_at(index)
                if self.session.processing_index == index:
                    raise OperationInProgressError(index)
                variant = _as_variant(variant)
            except VariantEngineError as e:
                return self._reject(e, span, index)

            draft = variant.model_copy(update={
                "id": stored.id,
                "persisted_id": stored.persisted_id,
                "sku": stored.sku,
            })
            self.session.variants[index] = draft
            return self._success("Variant draft updated", index, draft)

    def add_variant_images(self, index: int, image_refs: List[str]) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.add_variant_images") as span:
            span.set_attribute("app.variant.index", index)
            span.set_attribute("app.images.requested", len(image_refs))
            try:
                variant = self._variant_at(index)
                if self.session.processing_index == index:
                    raise OperationInProgressError(index)
                new_refs = [ref for ref in dict.fromkeys(image_refs) if ref not in variant.images]
                if len(variant.images) + len(new_refs) > settings.MAX_IMAGES_PER_VARIANT:
                    raise ImageLimitExceededError(settings.MAX_IMAGES_PER_VARIANT)
            except VariantEngineError as e:
                return self._reject(e, span, index)

            variant.images = variant.images + new_refs
            return self._success(f"{len(new_refs)} images added", index, variant)

    def remove_variant_image(self, index: int, image_index: int) -> VariantOperationResult:
        with self.tracer.start_as_current_span("VariantLifecycleController.remove_variant_image") as span:
            span.set_attribute("app.variant.index", index)
            try:
                variant = self._variant_at(index)
                if self.session.processing_index == index:
                    raise OperationInProgressError(index)
                if image_index < 0 or image_index >= len(variant.images):
                    raise VariantValidationError(f"Image {image_index} not found")
            except VariantEngineError as e:
                return self._reject(e, span, index)

            variant.images = [ref for i, ref in enumerate(variant.images) if i != image_index]
            return self._success("Image removed", index, variant)

    async def load_variants(self) -> VariantOperationResult:
        """Replace the collection with the product service's current variants."""
        with self.tracer.start_as_current_span("VariantLifecycleController.load_variants") as span:
            session = self.session
            try:
                if not session.product_id:
                    raise ProductNotPersistedError()
                if not session.is_idle:
                    raise OperationInProgressError(session.processing_index)
                variants = await self.gateway.list_variants(session.product_id)
            except VariantEngineError as e:
                return self._reject(e, span)

            session.variants = list(variants)
            self._clamp_expanded()
            span.set_attribute("app.variant.count", len(variants))
            logger.info("Variants loaded", extra={"product_id": session.product_id, "count": len(variants)})
            return self._success(f"{len(variants)} variants loaded")

    def summarize(self) -> DifferentiatorSummary:
        return summarize_differentiators(self.session.variants)


def build_default_variant(base: Mapping[str, Any]) -> Variant:
    """Single variant used when a product is saved with variants disabled."""
    data: Dict[str, Any] = {
        "name": base.get("name") or settings.DEFAULT_VARIANT_NAME,
        "price": base.get("price") or 0,
        "costPrice": base.get("costPrice", base.get("cost_price")) or 0,
        "description": base.get("description") or "",
        "images": list(base.get("images") or []),
        "attributeGroups": base.get("attributeGroups", base.get("attribute_groups")) or [],
    }
    return Variant.model_validate(data)


def _as_variant(data: VariantInput) -> Variant:
    if isinstance(data, Variant):
        return data
    try:
        return Variant.model_validate(dict(data))
    except ValidationError as e:
        raise VariantValidationError(_validation_message(e)) from e


def _build_payload(variant: Variant) -> VariantPayload:
    try:
        return variant.to_payload()
    except ValidationError as e:
        raise VariantValidationError(_validation_message(e)) from e


def _validation_message(error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}" for item in error.errors()
    )
    return f"Invalid variant: {details}"
