"""Centralized message constants for error messages, validation, and logging."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Authentication
    TOKEN_MISSING = "Authentication token required"
    TOKEN_INVALID = "Invalid or expired token"
    IDENTITY_UNAVAILABLE = "Identity service unavailable"

    # Rooms
    ROOM_NOT_FOUND = "Room not found"
    NOT_A_PARTICIPANT = "You must be in the room to do that"

    # Playback
    NO_SONG_LOADED = "No song is currently loaded"
    NO_PREVIOUS_SONG = "No previous song available"
    INVALID_SEEK_POSITION = "Seek position must be between 0 and {duration}"
    SONG_NOT_IN_QUEUE = "Song not found in queue"
    CANNOT_TOGGLE = "Cannot toggle playback, no song is loaded"

    # Queue
    INVALID_TRACK = "Invalid song data: missing song or song ID"
    DUPLICATE_TRACK = "This song is already in the queue"
    USER_QUEUE_LIMIT = "Queue limit reached: you can only queue up to {limit} songs at a time"
    INVALID_REORDER = "Queue indices out of range"

    # Stream resolution
    EMPTY_STREAM_URL = "Resolver returned an empty stream URL"
    ROOM_GONE = "Room no longer exists"

    # Settings
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"


class QueueProcessingMessages:
    """User-facing messages carried by queueProcessing notifications."""

    FETCHING = "Getting audio stream..."
    RETRYING = "Retrying ({attempt}/{max_attempts})..."
    SUCCESS = "Song added to queue successfully"
    FAILED = "Error adding song: {error}"
    ACCEPTED = "Processing song request"


class LogTemplates:
    """Log message templates.

    Use these with logger.info(), logger.error(), etc. and pass values as
    parameters for lazy formatting.
    """

    # Application lifecycle
    APP_STARTING = "Starting listen-together (%s) on %s:%s"
    APP_STOPPED = "listen-together stopped"
    APP_KEYBOARD_INTERRUPT = "Interrupted, shutting down"
    APP_FATAL_ERROR = "Fatal error: %s"
    LOGGING_CONFIG_MISSING = "Could not load %s, falling back to basic config"

    # Room lifecycle
    ROOM_CREATED = "Created room %s"
    ROOM_DESTROYED = "Room %s is empty, destroyed"
    PARTICIPANT_JOINED = "User %s joined room %s"
    PARTICIPANT_LEFT = "User %s left room %s (%d remaining)"

    # Playback
    TRACK_STARTED = "Started '%s' in room %s"
    PLAYBACK_PAUSED = "Paused room %s at %.2fs"
    PLAYBACK_RESUMED = "Resumed room %s at %.2fs"
    PLAYBACK_SEEKED = "Seeked room %s to %.2fs"
    TRACK_ADVANCED = "Advanced room %s: %s -> %s (%s)"
    QUEUE_EXHAUSTED = "Queue exhausted in room %s"
    PREVIOUS_TRACK = "Went back to '%s' in room %s"

    # Auto-next timer
    AUTO_NEXT_ARMED = "Auto-next for room %s armed in %.2fs"
    AUTO_NEXT_FIRED = "Auto-next fired for room %s"
    AUTO_NEXT_NO_DURATION = "Track %s has no duration, auto-next not armed"
    AUTO_NEXT_BROADCAST_FAILED = "Failed to broadcast auto-next transition for room %s"

    # Skip votes
    SKIP_VOTE_RECORDED = "Skip vote from %s in room %s (%d/%d)"
    SKIP_VOTE_PASSED = "Skip vote passed in room %s"

    # Queue
    QUEUE_ACCEPTED = "Accepted '%s' from %s for room %s"
    QUEUE_COMMITTED = "Queued '%s' in room %s (started=%s)"
    QUEUE_REMOVED = "Removed %s from queue in room %s"
    QUEUE_CLEARED = "Cleared %d tracks from queue in room %s"
    QUEUE_REORDERED = "Moved queue entry %d -> %d in room %s"
    QUEUE_SHUFFLED = "Shuffled queue in room %s"
    QUEUE_RESOLVE_FAILED = "Giving up on '%s' for room %s: %s"
    QUEUE_TASK_FAILED = "Queue processing task failed for %s"

    # Retry
    RETRY_ATTEMPT_FAILED = "%s failed (attempt %d/%d): %r"
    RETRY_EXHAUSTED = "%s failed after %d attempts"

    # Track-ended reconciliation
    TRACK_ENDED_RECEIVED = "trackEnded for %s in room %s from %s"
    TRACK_ENDED_DUPLICATE = "Ignoring duplicate trackEnded for %s in room %s"
    TRACK_ENDED_MISMATCH = "trackEnded mismatch in room %s: reported %s, current %s"
    TRACK_ENDED_RECOVERY = "No current song in room %s but queue is not empty, advancing"

    # Realtime
    SOCKET_CONNECTED = "Socket %s connected as %s"
    SOCKET_REJECTED = "Socket %s rejected: %s"
    SOCKET_DISCONNECTED = "Socket %s disconnected (user %s)"
    SOCKET_MALFORMED_EVENT = "Dropping malformed %s from %s: %s"
    SOCKET_EVENT_FAILED = "Error processing %s from %s"
    SOCKET_EVENT_FORBIDDEN = "Rejecting %s from %s: not a participant of room %s"
    EMIT = "Emitting %s to %s"
    GRACE_TIMER_STARTED = "User %s has no sockets left, removing in %ss"
    GRACE_TIMER_CANCELLED = "User %s reconnected, grace timer cancelled"
    GRACE_TIMER_EXPIRED = "User %s inactive for too long, removed from rooms %s"
    GRACE_TIMER_FAILED = "Grace timer expiry failed for user %s"
    SYNC_REQUESTED = "Sync requested for room %s by %s"

    # Identity
    IDENTITY_CACHE_HIT = "Identity cache hit for token ending %s"
    IDENTITY_REJECTED = "Identity service rejected token (status %s)"
    IDENTITY_ERROR = "Identity service call failed: %r"
    IDENTITY_SERVER_ERROR = "Identity service unavailable (status %s)"

    # Resolver
    RESOLVER_CACHE_HIT = "Stream cache hit for %s"
    RESOLVER_FAILED = "yt-dlp failed to extract %s"
    RESOLVER_NO_STREAM = "No audio stream found for %s"
