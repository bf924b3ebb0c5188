"""Workspace scoping dependency."""

from fastapi import Header, HTTPException


def get_workspace_id(x_workspace_id: str | None = Header(default=None)) -> int:
    # Workspace resolution lives upstream; callers pass the id through
    if not x_workspace_id:
        raise HTTPException(status_code=400, detail="Missing x-workspace-id header")
    try:
        return int(x_workspace_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid x-workspace-id header")
