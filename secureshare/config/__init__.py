from secureshare.config.settings import Settings

__all__ = ["Settings"]
