from blogapi.health.router import router


__all__ = ["router"]
