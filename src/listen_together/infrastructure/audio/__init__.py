"""Audio-source adapters."""

from listen_together.infrastructure.audio.ytdlp_resolver import YtDlpStreamResolver

__all__ = ["YtDlpStreamResolver"]
