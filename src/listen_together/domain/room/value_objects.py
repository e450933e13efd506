"""
Room Domain Value Objects

Enumerations describing transport commands and the outcomes of room
operations.
"""

from enum import Enum


class SyncAction(Enum):
    """The transport command a playbackSync event communicates."""

    PLAY = "play"
    PAUSE = "pause"
    SEEK = "seek"
    NEXT = "next"
    NONE = "none"


class QueueEndPolicy(Enum):
    """What an advance does to the current track when the queue is empty.

    CLEAR_CURRENT treats "next" as "no more music": the current track moves
    to history, the transport stops and the room becomes empty.
    KEEP_CURRENT leaves the current track loaded and only reports failure.
    """

    CLEAR_CURRENT = "clear_current"
    KEEP_CURRENT = "keep_current"


class SkipVoteOutcome(Enum):
    """Results of casting a skip vote."""

    # Successful outcomes
    VOTE_RECORDED = "vote_recorded"  # Counted, threshold not reached yet
    SKIPPED = "skipped"  # Threshold reached, advanced to the next track

    # Vote not counted outcomes
    ALREADY_VOTED = "already_voted"
    NO_SONG_PLAYING = "no_song_playing"
    NO_MORE_SONGS = "no_more_songs"  # Threshold reached but the queue is empty

    @property
    def is_success(self) -> bool:
        return self in {SkipVoteOutcome.VOTE_RECORDED, SkipVoteOutcome.SKIPPED}

    @property
    def action_executed(self) -> bool:
        return self is SkipVoteOutcome.SKIPPED

    def get_message(self, votes: int = 0, needed: int = 0) -> str:
        """Get a user-friendly message for this outcome."""
        messages = {
            SkipVoteOutcome.VOTE_RECORDED: f"Skip vote added ({votes}/{needed})",
            SkipVoteOutcome.SKIPPED: "Song skipped",
            SkipVoteOutcome.ALREADY_VOTED: "Already voted to skip",
            SkipVoteOutcome.NO_SONG_PLAYING: "No song playing",
            SkipVoteOutcome.NO_MORE_SONGS: "No more songs in queue",
        }
        return messages[self]


class TrackEndedOutcome(Enum):
    """How the server disposed of a client-reported trackEnded event."""

    ADVANCED = "advanced"  # Matched the current track and advanced
    QUEUE_ENDED = "queue_ended"  # Matched, but nothing left to play
    RECOVERED = "recovered"  # No current track, advanced from a non-empty queue
    DUPLICATE = "duplicate"  # Same track reported inside the dedup window
    MISMATCH = "mismatch"  # Reported track is not the current track
    IGNORED = "ignored"  # Unknown room, or nothing to do

    @property
    def advanced(self) -> bool:
        return self in {
            TrackEndedOutcome.ADVANCED,
            TrackEndedOutcome.QUEUE_ENDED,
            TrackEndedOutcome.RECOVERED,
        }


class QueueProcessingStatus(Enum):
    """Stages reported to a requester while their queue add is resolved."""

    FETCHING_STREAM_URL = "fetchingStreamUrl"
    RETRYING = "retrying"
    SUCCESS = "success"
    ERROR = "error"
