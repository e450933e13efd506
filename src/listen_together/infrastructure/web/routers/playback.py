"""Playback endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from listen_together.application.services.playback_models import PlaybackStatus, SkipVoteResponse
from listen_together.infrastructure.web.dependencies import CurrentUser, Playback

router = APIRouter(prefix="/playback", tags=["playback"])


class SeekBody(BaseModel):
    position: float


@router.post("/{room_id}/toggle", response_model=PlaybackStatus)
async def toggle(room_id: str, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.toggle(room_id, user.id)


@router.post("/{room_id}/play", response_model=PlaybackStatus)
async def play(room_id: str, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.play(room_id, user.id)


@router.post("/{room_id}/pause", response_model=PlaybackStatus)
async def pause(room_id: str, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.pause(room_id, user.id)


@router.post("/{room_id}/next", response_model=PlaybackStatus)
async def play_next(room_id: str, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.next(room_id, user.id)


@router.post("/{room_id}/previous", response_model=PlaybackStatus)
async def play_previous(room_id: str, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.previous(room_id, user.id)


@router.post("/{room_id}/skip", response_model=SkipVoteResponse)
async def skip(room_id: str, user: CurrentUser, playback: Playback) -> SkipVoteResponse:
    return await playback.skip(room_id, user.id)


@router.post("/{room_id}/seek", response_model=PlaybackStatus)
async def seek(room_id: str, body: SeekBody, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.seek(room_id, user.id, body.position)


@router.post("/{room_id}/songs/{song_id}/play", response_model=PlaybackStatus)
async def play_song(room_id: str, song_id: str, user: CurrentUser, playback: Playback) -> PlaybackStatus:
    return await playback.play_song(room_id, user.id, song_id)
