"""API router composition."""

from __future__ import annotations

from fastapi import APIRouter

from carmarket.api.handlers import (
    handle_ai_intent,
    handle_car_makes,
    handle_car_models,
    handle_health,
    handle_inventory,
    handle_track_search,
)

router = APIRouter()
router.add_api_route("/api/inventory", handle_inventory, methods=["GET"], tags=["inventory"])
router.add_api_route("/api/ai-intent", handle_ai_intent, methods=["POST"], tags=["intent"])
router.add_api_route("/api/car-makes", handle_car_makes, methods=["GET"], tags=["lookups"])
router.add_api_route("/api/car-models", handle_car_models, methods=["GET"], tags=["lookups"])
router.add_api_route("/api/track/search", handle_track_search, methods=["POST"], tags=["tracking"])
router.add_api_route("/health", handle_health, methods=["GET"], tags=["health"])
