"""Configuration package utilities."""

__all__ = ["ConfigController", "section"]


def __getattr__(name: str):
    if name in {"ConfigController", "section"}:
        from config import controller

        return getattr(controller, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
