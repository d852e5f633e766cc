from modulecms.extensions import db
from .base import BaseModel


class AgentExecution(BaseModel):
    __tablename__ = "agent_executions"

    agent_id = db.Column(db.String(100), nullable=False, index=True)
    post_id = db.Column(db.String(36), db.ForeignKey("posts.id"), nullable=True, index=True)
    user_id = db.Column(db.String(36), nullable=True)
    scope = db.Column(db.String(50), nullable=False, default="dropdown")
    # ai-review | review | publish
    view_mode = db.Column(db.String(20), nullable=False, default="ai-review")

    request = db.Column(db.JSON, nullable=True)
    response = db.Column(db.JSON, nullable=True)
    success = db.Column(db.Boolean, nullable=False, default=False)
    error = db.Column(db.Text, nullable=True)
    duration_ms = db.Column(db.Integer, nullable=True)
