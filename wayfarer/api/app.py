import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from wayfarer.config import Settings, load_settings
from wayfarer.content import ContentBundle, load_bundle
from wayfarer.engine import NarrativeEngine
from wayfarer.generation import DialogGenerator, EchoGenerator, HttpDialogGenerator
from wayfarer.saves import Autosaver, SaveManager
from wayfarer.storage import JsonFileStore, SaveStore
from wayfarer.typewriter import Typewriter

from .routes import router

load_dotenv(Path(__file__).parent.parent.parent / ".env")

logger = logging.getLogger(__name__)


def build_generator(settings: Settings) -> DialogGenerator:
    if not settings.provider_url:
        logger.info("no provider_url configured, using EchoGenerator")
        return EchoGenerator()
    return HttpDialogGenerator(
        provider_url=settings.provider_url,
        api_key=settings.api_key,
        provider_format=settings.provider_format,
        model=settings.model,
        timeout=settings.generation_timeout,
    )


def create_app(
    settings: Settings | None = None,
    bundle: ContentBundle | None = None,
    store: SaveStore | None = None,
    generator: DialogGenerator | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    bundle = bundle or load_bundle(Path(settings.content_path))
    saves = SaveManager(store or JsonFileStore(settings.saves_dir), settings.storage_prefix)
    generator = generator or build_generator(settings)

    app = FastAPI(title="Wayfarer")
    app.state.settings = settings
    app.state.bundle = bundle
    app.state.saves = saves
    app.state.sessions = {}

    def engine_factory(player_name: str = "") -> NarrativeEngine:
        current: Settings = app.state.settings
        engine = NarrativeEngine.new_game(
            bundle,
            player_name,
            typewriter=Typewriter(current.typewriter_cps),
            generator=generator,
            saves=saves,
            generation_timeout=current.generation_timeout,
        )
        if current.autosave:
            engine.on(Autosaver(saves, engine.snapshot))
        return engine

    app.state.engine_factory = engine_factory
    app.include_router(router, prefix="/api")
    return app
