# clinic/routers/__init__.py
from . import health
from . import auth
from . import users
from . import doctors
from . import appointments

__all__ = ["health", "auth", "users", "doctors", "appointments"]
