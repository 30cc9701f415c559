from lawcomments.health.router import router


__all__ = ["router"]
