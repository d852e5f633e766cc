from flask import g, jsonify, request

from modulecms.services import site_settings_service

# still served while the site is down so crawlers see the Disallow
ALWAYS_SERVED = {"site.robots_txt"}


def maintenance_middleware(app):
    @app.before_request
    def block_site_during_maintenance():
        """Public site routes answer 503 while maintenance mode is on; signed-in staff pass."""
        if request.blueprint != "site" or request.endpoint in ALWAYS_SERVED:
            return None
        if getattr(g, "current_user", None) is not None:
            return None
        if not site_settings_service.get()["is_maintenance_mode"]:
            return None
        response = jsonify({"error": "Site is under maintenance"})
        response.status_code = 503
        response.headers["Retry-After"] = "300"
        return response
