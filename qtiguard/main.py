from qtiguard.api.main import app

__all__ = ["app"]
