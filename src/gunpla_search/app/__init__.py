from quart import Quart, jsonify
from dotenv import load_dotenv
import logging

from gunpla_search.settings import settings

load_dotenv()


def create_app(services=None):
    from .services.container import AppLifecycle, AppServices

    if services is None:
        services = AppServices.create()

    lifecycle = AppLifecycle(services)

    app = Quart(__name__)
    app.config["JSON_SORT_KEYS"] = False

    app.extensions["gunpla_search"] = services

    logging.basicConfig(
        level=str(settings.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    from .routes.search import search_bp

    app.register_blueprint(search_bp)

    app.extensions["gunpla_search_lifecycle"] = lifecycle

    def _install_lifecycle() -> None:
        if hasattr(app, "lifecycle"):

            @app.lifecycle  # type: ignore[misc]
            async def _lifespan(app: Quart):
                async with lifecycle:
                    yield

        else:

            @app.before_serving
            async def _start_lifecycle() -> None:
                await lifecycle.start()

            @app.after_serving
            async def _stop_lifecycle() -> None:
                await lifecycle.stop()

    _install_lifecycle()

    @app.errorhandler(404)
    async def not_found(e):
        message = getattr(e, "description", "Not found.")
        return jsonify({"error": message}), 404

    @app.errorhandler(Exception)
    async def handle_exception(e):
        app.logger.exception("Unhandled exception: %s", e)
        return jsonify({"error": "An unexpected error occurred."}), 500

    app.logger.info("Application initialized")
    return app
