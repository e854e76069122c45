import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from opentelemetry import trace
from pydantic import Field

from variant_engine.api.dependencies import (
    VariantSessionRegistry,
    get_controller,
    get_gateway,
    get_session_registry,
)
from variant_engine.clients.gateway import VariantPersistenceGateway
from variant_engine.schemas.attribute import CamelModel
from variant_engine.schemas.variant import (
    DifferentiatorSummary,
    Variant,
    VariantOperationResult,
    VariantSessionState,
)
from variant_engine.services.variant_manager import VariantLifecycleController, build_default_variant

router = APIRouter()
tracer = trace.get_tracer("variant_engine.api.variant_sessions")

logger = logging.getLogger(__name__)


class OpenSessionRequest(CamelModel):
    product_id: Optional[str] = None
    variants: Optional[List[Variant]] = None


class AttachProductRequest(CamelModel):
    product_id: str


class AddImagesRequest(CamelModel):
    images: List[str] = Field(default_factory=list)


class SessionResponse(CamelModel):
    session_id: str
    state: VariantSessionState


class OperationResponse(CamelModel):
    result: VariantOperationResult
    state: VariantSessionState


def _respond(controller: VariantLifecycleController, result: VariantOperationResult):
    body = OperationResponse(result=result, state=controller.session.snapshot())
    if result.ok:
        return body
    return JSONResponse(
        status_code=result.http_status or 400,
        content=body.model_dump(mode="json", by_alias=True),
    )


@router.post("", response_model=SessionResponse, status_code=201, summary="Open a variant editing session")
async def open_session(
    request: OpenSessionRequest,
    registry: VariantSessionRegistry = Depends(get_session_registry),
    gateway: VariantPersistenceGateway = Depends(get_gateway),
):
    """상품 variant 편집 세션 생성 (저장된 상품이면 variant 목록 로드)"""
    with tracer.start_as_current_span("endpoint.open_variant_session") as span:
        session_id = registry.open(gateway, product_id=request.product_id, variants=request.variants)
        controller = registry.get(session_id)
        span.set_attribute("app.session.id", session_id)
        if request.product_id and request.variants is None:
            result = await controller.load_variants()
            if not result.ok:
                registry.close(session_id)
                return JSONResponse(
                    status_code=result.http_status or 502,
                    content={"detail": result.message, "code": result.code},
                )
        return SessionResponse(session_id=session_id, state=controller.session.snapshot())


@router.get("/{session_id}", response_model=VariantSessionState)
async def get_session_state(controller: VariantLifecycleController = Depends(get_controller)):
    return controller.session.snapshot()


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str, registry: VariantSessionRegistry = Depends(get_session_registry)):
    registry.close(session_id)


@router.put("/{session_id}/product", response_model=VariantSessionState, summary="Attach the saved product")
async def attach_product(
    request: AttachProductRequest,
    controller: VariantLifecycleController = Depends(get_controller),
):
    controller.session.product_id = request.product_id
    logger.info("Product attached to variant session", extra={"product_id": request.product_id})
    return controller.session.snapshot()


@router.post("/{session_id}/variants", response_model=OperationResponse)
async def add_variant(controller: VariantLifecycleController = Depends(get_controller)):
    return _respond(controller, controller.add_new_variant())


@router.post("/{session_id}/variants/{variant_id}/clone", response_model=OperationResponse)
async def clone_variant(variant_id: str, controller: VariantLifecycleController = Depends(get_controller)):
    return _respond(controller, controller.clone_variant(variant_id))


@router.put("/{session_id}/variants/{index}", response_model=OperationResponse, summary="Validate and save a variant")
async def save_variant(
    index: int,
    variant: Variant,
    controller: VariantLifecycleController = Depends(get_controller),
):
    with tracer.start_as_current_span("endpoint.save_variant") as span:
        span.set_attribute("app.variant.index", index)
        result = await controller.save_variant(variant, index)
        return _respond(controller, result)


@router.patch("/{session_id}/variants/{index}", response_model=OperationResponse, summary="Update an in-memory draft")
async def update_variant_draft(
    index: int,
    variant: Variant,
    controller: VariantLifecycleController = Depends(get_controller),
):
    return _respond(controller, controller.update_variant_draft(index, variant))


@router.delete("/{session_id}/variants/{variant_id}", response_model=OperationResponse)
async def delete_variant(variant_id: str, controller: VariantLifecycleController = Depends(get_controller)):
    with tracer.start_as_current_span("endpoint.delete_variant") as span:
        span.set_attribute("app.variant.id", variant_id)
        result = await controller.delete_variant(variant_id)
        return _respond(controller, result)


@router.post("/{session_id}/variants/{index}/images", response_model=OperationResponse)
async def add_variant_images(
    index: int,
    request: AddImagesRequest,
    controller: VariantLifecycleController = Depends(get_controller),
):
    return _respond(controller, controller.add_variant_images(index, request.images))


@router.delete("/{session_id}/variants/{index}/images/{image_index}", response_model=OperationResponse)
async def remove_variant_image(
    index: int,
    image_index: int,
    controller: VariantLifecycleController = Depends(get_controller),
):
    return _respond(controller, controller.remove_variant_image(index, image_index))


@router.post("/{session_id}/expand/{index}", response_model=VariantSessionState)
async def toggle_expand(index: int, controller: VariantLifecycleController = Depends(get_controller)):
    controller.toggle_expand(index)
    return controller.session.snapshot()


@router.get("/{session_id}/differentiators", response_model=DifferentiatorSummary)
async def differentiator_summary(controller: VariantLifecycleController = Depends(get_controller)):
    return controller.summarize()


@router.post("/default-variant", response_model=Variant, summary="Build the default variant from base product data")
async def default_variant(base: Dict[str, Any]):
    return build_default_variant(base)
