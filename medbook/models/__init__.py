from . import appointment, doctor, user  # noqa: F401
