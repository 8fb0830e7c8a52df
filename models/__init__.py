from .db import db
from .user import User, Role, user_roles
from .session import Session
from .kv_entry import KeyValueEntry
from .product import Product
from .order import Order
from .challenge import PendingChallenge
