"""Queue endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from listen_together.application.services.playback_models import QueueAccepted, QueueResponse
from listen_together.infrastructure.web.dependencies import CurrentUser, Queue

router = APIRouter(prefix="/queue", tags=["queue"])


class AddSongBody(BaseModel):
    song: dict[str, Any] | None = None


class ReorderBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_index: int = Field(validation_alias="fromIndex")
    to_index: int = Field(validation_alias="toIndex")


@router.get("/{room_id}", response_model=QueueResponse)
async def get_queue(room_id: str, user: CurrentUser, queue: Queue) -> QueueResponse:
    return queue.get_queue(room_id)


@router.post("/{room_id}/add", status_code=status.HTTP_202_ACCEPTED, response_model=QueueAccepted)
async def add_to_queue(room_id: str, body: AddSongBody, user: CurrentUser, queue: Queue) -> QueueAccepted:
    return await queue.add(room_id, user, body.song)


@router.post("/{room_id}/reorder", response_model=QueueResponse)
async def reorder_queue(room_id: str, body: ReorderBody, user: CurrentUser, queue: Queue) -> QueueResponse:
    return await queue.reorder(room_id, user.id, body.from_index, body.to_index)


@router.post("/{room_id}/shuffle", response_model=QueueResponse)
async def shuffle_queue(room_id: str, user: CurrentUser, queue: Queue) -> QueueResponse:
    return await queue.shuffle(room_id, user.id)


@router.delete("/{room_id}/{song_id}", response_model=QueueResponse)
async def remove_from_queue(room_id: str, song_id: str, user: CurrentUser, queue: Queue) -> QueueResponse:
    return await queue.remove(room_id, user.id, song_id)


@router.delete("/{room_id}", response_model=QueueResponse)
async def clear_queue(room_id: str, user: CurrentUser, queue: Queue) -> QueueResponse:
    return await queue.clear(room_id, user.id)
