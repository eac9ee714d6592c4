# salon/routers/changes_routes.py

from fastapi import APIRouter, Depends, Query

from salon.changes import ChangeFeed
from salon.deps import get_feed
from salon.schemas import ChangesResponse

router = APIRouter(
    tags=["changes"],
)


@router.get("/changes", response_model=ChangesResponse)
def poll_changes(
    since: int = Query(default=0, ge=0),
    feed: ChangeFeed = Depends(get_feed),
):
    """Row changes after ``since``. Clients keep the returned cursor and poll again."""
    events = feed.since(since)
    return {
        "cursor": events[-1].seq if events else feed.cursor,
        "events": [
            {"seq": e.seq, "table": e.table, "action": e.action, "row_id": e.row_id, "at": e.at}
            for e in events
        ],
    }
