from listen_together.infrastructure.web.routers import playback, queue, rooms

__all__ = ["playback", "queue", "rooms"]
