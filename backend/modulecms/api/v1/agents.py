from flask import jsonify, request
from flask_jwt_extended import jwt_required
from modulecms.application.agents.run_agent import run_agent
from modulecms.models.agent_execution import AgentExecution
from modulecms.services.agent_registry import agent_registry
from modulecms.utils.decorators import permission_required
from .helpers import actor_id, json_body
from . import v1_bp


def _public_agent(agent):
    """Agent definition without webhook secrets or provider options."""
    return {
        "id": agent["id"],
        "name": agent.get("name"),
        "description": agent.get("description"),
        "type": agent["type"],
        "enabled": agent.get("enabled", True),
        "scopes": agent.get("scopes") or [],
        "open_ended_context": agent.get("open_ended_context") or {"enabled": False},
    }


@v1_bp.route("/agents", methods=["GET"])
@jwt_required()
@permission_required("agents.view")
def list_agents():
    scope = request.args.get("scope")
    if scope:
        agents = agent_registry.list_by_scope(
            scope,
            form_slug=request.args.get("form_slug"),
            field_key=request.args.get("field_key"),
        )
    else:
        agents = agent_registry.list()
    return jsonify([_public_agent(a) for a in agents]), 200


@v1_bp.route("/posts/<post_id>/agents/<agent_id>/run", methods=["POST"])
@jwt_required()
@permission_required("agents.view", "posts.edit")
def run_agent_route(post_id, agent_id):
    data = json_body()
    result = run_agent(
        post_id=post_id,
        agent_id=agent_id,
        context=data.get("context"),
        open_ended_context=data.get("open_ended_context"),
        actor_id=actor_id(),
    )
    return jsonify(result), 200


@v1_bp.route("/posts/<post_id>/agent-executions", methods=["GET"])
@jwt_required()
@permission_required("agents.view")
def list_agent_executions(post_id):
    rows = (
        AgentExecution.query
        .filter_by(post_id=post_id)
        .order_by(AgentExecution.created_at.desc())
        .limit(50)
        .all()
    )
    return jsonify([
        {
            "id": row.id,
            "agent_id": row.agent_id,
            "view_mode": row.view_mode,
            "success": row.success,
            "error": row.error,
            "duration_ms": row.duration_ms,
            "created_at": row.created_at.isoformat(),
        }
        for row in rows
    ]), 200
