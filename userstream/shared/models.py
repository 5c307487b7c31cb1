"""
MODULE OVERVIEW:
Typed data structures shared by the server and the CLI client, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
`StreamEvent` is the one value that crosses the event-stream wire. It is frozen:
once the producer builds it, nobody downstream can mutate it.
The `User*` models are the JSON-facing shapes of rows in the `users` table.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StreamEventKind(str, Enum):
    # The wire name of a tick is "time"; browser clients subscribe to it by that name.
    TICK = "time"
    EXIT = "exit"


EXIT_PAYLOAD = "exited"


class StreamEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: StreamEventKind
    payload: str

    @classmethod
    def tick(cls, tick_count: int) -> "StreamEvent":
        return cls(kind=StreamEventKind.TICK, payload=f"Timer: {tick_count} seconds")

    @classmethod
    def exit(cls) -> "StreamEvent":
        return cls(kind=StreamEventKind.EXIT, payload=EXIT_PAYLOAD)

    @property
    def is_exit(self) -> bool:
        return self.kind is StreamEventKind.EXIT


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    age: int = 0


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, min_length=3)
    age: int | None = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    age: int


class ExampleGetResponse(BaseModel):
    message: str
    count: int
