"""Room endpoints: snapshot, join, leave and participants."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from listen_together.domain.room.entities import Participant, RoomState
from listen_together.infrastructure.web.dependencies import CurrentUser, Rooms

router = APIRouter(prefix="/rooms", tags=["rooms"])


class JoinBody(BaseModel):
    user: dict[str, Any] | None = None


@router.get("/{room_id}", response_model=RoomState)
async def get_room(room_id: str, user: CurrentUser, rooms: Rooms) -> RoomState:
    return rooms.snapshot(room_id)


@router.post("/{room_id}/join")
async def join_room(
    room_id: str, user: CurrentUser, rooms: Rooms, body: JoinBody | None = None
) -> dict[str, Any]:
    state = await rooms.join(room_id, user, body.user if body else None)
    return {"message": "Successfully joined room", "room": state}


@router.post("/{room_id}/leave")
async def leave_room(room_id: str, user: CurrentUser, rooms: Rooms) -> dict[str, Any]:
    remaining = await rooms.leave(room_id, user.id)
    return {"message": "Successfully left room", "remaining": remaining}


@router.get("/{room_id}/participants", response_model=list[Participant])
async def get_participants(room_id: str, user: CurrentUser, rooms: Rooms) -> list[Participant]:
    return rooms.participants(room_id).participants
