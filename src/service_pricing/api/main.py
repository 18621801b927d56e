from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from service_pricing import __version__
from service_pricing.config.settings import configure_logging
from service_pricing.engine import SurchargeOptions, WorkerTier, format_currency
from service_pricing.engine.exceptions import (
    IncrementLimitReached,
    InvalidJobAttributes,
    PricingError,
)
from service_pricing.policy.cancellation_policy import CancellationPolicy
from service_pricing.policy.price_increment import IncrementState, PriceIncrementPolicy
from service_pricing.api.state import engine, config_provider

configure_logging()

app = FastAPI(
    title="Service Pricing API",
    description="Estimate preview and billing calculations for service requests",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

cancellation_policy = CancellationPolicy(engine)
increment_policy = PriceIncrementPolicy(config_provider)


class EstimateRequest(BaseModel):
    square_meters: float
    ai_estimated_hours: float
    ai_difficulty_multiplier: float = 1.0
    has_high_weeds: bool = False
    complicated_access: bool = False
    has_slope: bool = False
    worker_tier: WorkerTier = WorkerTier.STARTER


class ExtraTimeRequest(EstimateRequest):
    extra_minutes: float


class CancellationFeeRequest(BaseModel):
    total_price: float


class CancellationRequest(BaseModel):
    total_price: int
    status: str
    scheduled_at: Optional[datetime] = None


class IncrementRequest(BaseModel):
    request_id: str
    base_price: int
    extra_increment: int = 0
    increment_count: int = Field(default=0, ge=0)


def _raise_http(error: PricingError):
    if isinstance(error, InvalidJobAttributes):
        raise HTTPException(status_code=422, detail=str(error))
    if isinstance(error, IncrementLimitReached):
        raise HTTPException(status_code=409, detail=str(error))
    raise HTTPException(status_code=500, detail=str(error))


@app.get("/")
async def root():
    return {"status": "online", "message": "Service Pricing API Active"}


@app.get("/config")
async def get_config():
    config = config_provider.get_system_config()
    return {
        "config": config.to_dict(),
        "using_fallback": getattr(config_provider, "using_fallback", False),
    }


@app.get("/tiers")
async def get_tiers():
    return [tier.to_dict() for tier in config_provider.get_tier_configs()]


@app.get("/tiers/classify")
async def classify_points(points: int):
    try:
        tier = config_provider.calculate_tier_from_points(points)
    except PricingError as e:
        _raise_http(e)
    return {"points": points, "tier": tier.value}


def _price(req: EstimateRequest):
    return engine.calculate_service_price(
        square_meters=req.square_meters,
        ai_estimated_hours=req.ai_estimated_hours,
        ai_difficulty_multiplier=req.ai_difficulty_multiplier,
        options=SurchargeOptions(
            has_high_weeds=req.has_high_weeds,
            complicated_access=req.complicated_access,
            has_slope=req.has_slope,
        ),
        worker_tier=req.worker_tier,
    )


@app.post("/estimate")
async def estimate(req: EstimateRequest):
    try:
        breakdown = _price(req)
    except PricingError as e:
        _raise_http(e)

    result = breakdown.to_dict()
    result["display_total"] = format_currency(breakdown.total, breakdown.currency)
    result["trace"] = breakdown.calculation_snapshot.get_trace_text()
    return result


@app.post("/cancellation-fee")
async def cancellation_fee(req: CancellationFeeRequest):
    try:
        fee = engine.calculate_cancellation_fee(req.total_price)
    except PricingError as e:
        _raise_http(e)
    return {"total_price": req.total_price, "fee": fee}


@app.post("/cancellation/evaluate")
async def evaluate_cancellation(req: CancellationRequest):
    try:
        outcome = cancellation_policy.evaluate(req.total_price, req.status, req.scheduled_at)
    except PricingError as e:
        _raise_http(e)
    return {
        "penalty": outcome.penalty,
        "refund": outcome.refund,
        "worker_share": outcome.worker_share,
        "platform_share": outcome.platform_share,
        "free": outcome.free,
        "reason": outcome.reason,
    }


@app.post("/increment")
async def increment_price(req: IncrementRequest):
    try:
        result = increment_policy.increment(IncrementState(**req.model_dump()))
    except PricingError as e:
        _raise_http(e)
    return {
        "request_id": result.state.request_id,
        "estimated_final_price": result.state.estimated_final_price,
        "extra_increment": result.state.extra_increment,
        "increment_count": result.state.increment_count,
        "increment_amount": result.increment_amount,
        "max_increment_count": result.max_increment_count,
        "can_increment_again": result.can_increment_again,
    }


@app.post("/extra-time")
async def extra_time(req: ExtraTimeRequest):
    try:
        breakdown = _price(req)
        adjustment = engine.calculate_extra_time_adjustment(breakdown, req.extra_minutes)
    except PricingError as e:
        _raise_http(e)
    return {
        "original": breakdown.to_dict(),
        "adjustment": {
            "reason": adjustment.reason,
            "total": adjustment.total,
            "worker_net": adjustment.worker_net,
            "platform_fee": adjustment.platform_fee,
            "taxes": adjustment.taxes,
        },
        "combined": adjustment.apply_to(breakdown),
    }
