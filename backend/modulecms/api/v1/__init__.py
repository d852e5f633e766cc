from flask import Blueprint

# Create the versioned blueprint
v1_bp = Blueprint("v1", __name__)

# Import route modules so they register with v1_bp
from . import health
from . import auth
from . import users
from . import posts
from . import post_modules
from . import reviews
from . import translations
from . import modules
from . import media
from . import url_patterns
from . import settings
from . import menus
from . import forms
from . import agents
from . import audit
