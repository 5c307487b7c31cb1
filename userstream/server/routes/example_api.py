"""
Two toy JSON endpoints.

The GET counter lives on `app.state` (created in the lifespan) rather than in a
module global, so each app instance, and each test, starts counting from zero.
It still resets on restart.
"""
from typing import Any

from fastapi import APIRouter, Body, Request

from userstream.shared.models import ExampleGetResponse

router = APIRouter(prefix="/example-api")


class RequestCounter:
    def __init__(self):
        self.count = 0

    def increment(self) -> int:
        # Handlers run on the event loop thread; no lock needed.
        self.count += 1
        return self.count


@router.get("/get", response_model=ExampleGetResponse)
async def example_get(request: Request):
    return ExampleGetResponse(
        message="This is response for GET method API",
        count=request.app.state.request_counter.increment(),
    )


@router.post("/post")
async def example_post(payload: Any = Body(...)):
    # curl -X POST http://127.0.0.1:8000/example-api/post -H 'Content-Type: application/json' -d '{"key":"value"}'
    return {"data": payload}
