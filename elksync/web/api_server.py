"""
elk-sync Web API Server.

FastAPI backend exposing the LED controller over HTTP: sync and effect
sessions, static colors, power, brightness, native effects, modes and
wiring settings.
"""

import logging
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..consumer.packet_codec import NativeEffect
from ..core.led_controller import LedController
from ..producer.effects import EffectRegistry, LedEffect

logger = logging.getLogger(__name__)


# =============================================================================
# Request models
# =============================================================================


class EffectRequest(BaseModel):
    """Start a software effect."""

    effect_id: str = Field(..., description="Effect id, e.g. 'rainbow'")
    speed: Optional[float] = Field(None, ge=0.0, le=10.0, description="Delay multiplier (lower is faster)")


class ColorRequest(BaseModel):
    """Static color."""

    r: int = Field(..., description="Red 0-255 (out-of-range values are clamped)")
    g: int = Field(..., description="Green 0-255")
    b: int = Field(..., description="Blue 0-255")
    responsiveness: Optional[float] = Field(None, ge=0.0, le=1.0, description="Color-picker smoothing, 1 = instant")


class LevelRequest(BaseModel):
    """Single 0-100 level."""

    level: int = Field(..., description="Level 0-100 (clamped)")


class PowerRequest(BaseModel):
    on: bool = Field(..., description="True to power on")


class NativeEffectRequest(BaseModel):
    effect: str = Field(..., description="NativeEffect name, e.g. 'JUMP_RGB'")
    speed: Optional[int] = Field(None, description="Native effect speed 0-100")


class TemperatureRequest(BaseModel):
    preset: Optional[int] = Field(None, description="Temperature preset 0 (cold) - 10 (warm)")
    value: Optional[int] = Field(None, description="Temperature color 0-100")


class DynamicRequest(BaseModel):
    value: int = Field(..., description="Dynamic mode value 0-255")
    sensitivity: Optional[int] = Field(None, description="Dynamic sensitivity 0-100")


class PinOrderRequest(BaseModel):
    order: Optional[int] = Field(None, description="Preset order 1-6")
    custom: Optional[List[int]] = Field(None, min_length=3, max_length=3, description="Custom order, each 1-3")


class AudioSyncRequest(BaseModel):
    enabled: bool


# =============================================================================
# App
# =============================================================================

app = FastAPI(
    title="elk-sync Control Interface",
    description="Control API for ELK-BLEDOM LED controllers",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

controller: Optional[LedController] = None


def set_controller(led_controller: Optional[LedController]) -> None:
    global controller
    controller = led_controller


def get_controller() -> LedController:
    if controller is None:
        raise HTTPException(status_code=503, detail="LED controller not initialized")
    return controller


@app.get("/api/status")
def get_status():
    return get_controller().get_status()


@app.get("/api/effects")
async def list_effects():
    return {"effects": EffectRegistry.list_effects(), "categories": list(EffectRegistry.by_category().keys())}


@app.get("/api/native-effects")
async def list_native_effects():
    return {
        category.value: [{"name": e.name, "id": e.effect_id, "display_name": e.display_name} for e in effects]
        for category, effects in NativeEffect.by_category().items()
    }


@app.post("/api/sync/start")
def start_sync():
    led = get_controller()
    try:
        led.start_sync()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "syncing"}


@app.post("/api/sync/stop")
def stop_sync():
    stopped = get_controller().stop_sync()
    return {"status": "stopped" if stopped else "not_running"}


@app.post("/api/effects/start")
def start_effect(request: EffectRequest):
    led = get_controller()
    try:
        effect = LedEffect.from_id(request.effect_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Effect not found: {request.effect_id}")
    led.start_effect(effect, speed=request.speed)
    logger.info(f"Effect started via API: {effect.effect_id}")
    return {"status": "running", "effect": effect.effect_id}


@app.post("/api/effects/stop")
def stop_effect():
    stopped = get_controller().stop_effect()
    return {"status": "stopped" if stopped else "not_running"}


@app.post("/api/color")
def set_color(request: ColorRequest):
    color = get_controller().set_static_color(request.r, request.g, request.b, request.responsiveness)
    return {"status": "ok", "color": list(color)}


@app.post("/api/brightness")
def set_brightness(request: LevelRequest):
    delivered = get_controller().set_brightness(request.level)
    return {"status": "ok", "delivered": delivered}


@app.post("/api/power")
def set_power(request: PowerRequest):
    led = get_controller()
    delivered = led.power_on() if request.on else led.power_off()
    return {"status": "on" if request.on else "off", "delivered": delivered}


@app.post("/api/native-effect")
def set_native_effect(request: NativeEffectRequest):
    led = get_controller()
    try:
        delivered = led.set_native_effect(request.effect)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Native effect not found: {request.effect}")
    if request.speed is not None:
        led.set_native_effect_speed(request.speed)
    return {"status": "ok", "delivered": delivered}


@app.post("/api/mode/grayscale")
def set_grayscale(request: LevelRequest):
    delivered = get_controller().set_grayscale(request.level)
    return {"status": "ok", "delivered": delivered}


@app.post("/api/mode/temperature")
def set_temperature(request: TemperatureRequest):
    if request.preset is None and request.value is None:
        raise HTTPException(status_code=400, detail="Either preset or value is required")
    led = get_controller()
    delivered = True
    if request.preset is not None:
        delivered = led.set_temperature_preset(request.preset)
    if request.value is not None:
        delivered = led.set_temperature_color(request.value) and delivered
    return {"status": "ok", "delivered": delivered}


@app.post("/api/mode/dynamic")
def set_dynamic(request: DynamicRequest):
    led = get_controller()
    delivered = led.set_dynamic_mode(request.value)
    if request.sensitivity is not None:
        led.set_dynamic_sensitivity(request.sensitivity)
    return {"status": "ok", "delivered": delivered}


@app.post("/api/pin-order")
def set_pin_order(request: PinOrderRequest):
    led = get_controller()
    if request.custom is not None:
        delivered = led.set_custom_pin_order(*request.custom)
    elif request.order is not None:
        delivered = led.set_pin_order(request.order)
    else:
        raise HTTPException(status_code=400, detail="Either order or custom is required")
    return {"status": "ok", "delivered": delivered}


@app.post("/api/audio-sync")
def set_audio_sync(request: AudioSyncRequest):
    get_controller().set_audio_sync(request.enabled)
    return {"status": "ok", "enabled": request.enabled}


def run_server(led_controller: LedController, host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the API server (blocking)."""
    set_controller(led_controller)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run(app, host=host, port=port, reload=False, log_level="info", access_log=False)
