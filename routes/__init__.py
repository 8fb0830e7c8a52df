from .health import health_bp
from .auth import auth_bp
from .catalog import catalog_bp
from .orders import orders_bp
from .payments import payments_bp
from .stripe_webhook import webhook_bp
from .admin import admin_bp
from .media import media_bp
