from flask import Flask, send_file, current_app
from .config import config_by_name
from .extensions import db, migrate, jwt
from .api.v1 import v1_bp
from .api.site import site_bp
from .middleware.current_user import current_user_middleware
from .middleware.rate_limit import rate_limit_middleware
from .middleware.maintenance import maintenance_middleware
from .errors import register_error_handlers
from flask_swagger_ui import get_swaggerui_blueprint
import os


def register_builtins() -> None:
    """Load the code-defined modules, roles, post types, agents and forms."""
    from .agents import BUILTIN_AGENTS
    from .forms import BUILTIN_FORMS
    from .modules import BUILTIN_MODULES
    from .post_types import BUILTIN_POST_TYPES
    from .roles import BUILTIN_ROLES
    from .services.agent_registry import agent_registry
    from .services.form_registry import form_registry
    from .services.module_registry import module_registry
    from .services.post_type_registry import post_type_registry
    from .services.role_registry import role_registry

    for module_cls in BUILTIN_MODULES:
        module = module_cls()
        if not module_registry.has(module.config.type):
            module_registry.register(module)
    for role in BUILTIN_ROLES:
        if not role_registry.has(role["name"]):
            role_registry.register(role)
    for post_type in BUILTIN_POST_TYPES:
        if not post_type_registry.has(post_type["type"]):
            post_type_registry.register(post_type)
    for agent in BUILTIN_AGENTS:
        if not agent_registry.has(agent["id"]):
            agent_registry.register(agent)
    for form in BUILTIN_FORMS:
        if not form_registry.has(form["slug"]):
            form_registry.register(form)


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    from . import models  # noqa: F401  (register tables on the metadata)

    register_builtins()

    # -------------------------------------------------
    # Middleware
    # -------------------------------------------------
    current_user_middleware(app)
    rate_limit_middleware(app)
    maintenance_middleware(app)

    # -------------------------------------------------
    # Blueprints
    # -------------------------------------------------
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    app.register_blueprint(site_bp)
    register_error_handlers(app)

    # -------------------------------------------------
    # Serve OpenAPI YAML
    # -------------------------------------------------
    @app.route("/openapi/cms.yaml", methods=["GET"], endpoint="openapi_cms")
    def serve_openapi():
        spec_path = os.path.join(
            current_app.root_path,
            "api",
            "v1",
            "cms_openapi.yaml",
        )

        if not os.path.exists(spec_path):
            raise FileNotFoundError("cms_openapi.yaml not found")

        return send_file(
            spec_path,
            mimetype="application/yaml",
            as_attachment=False,
        )

    # -------------------------------------------------
    # Swagger UI
    # -------------------------------------------------
    SWAGGER_URL = "/swagger"
    API_URL = "/openapi/cms.yaml"

    swaggerui_blueprint = get_swaggerui_blueprint(
        SWAGGER_URL,
        API_URL,
        config={
            "app_name": "ModuleCMS API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )

    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)

    return app
