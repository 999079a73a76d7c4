from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check(request: Request):
    oracle = getattr(request.app.state, "oracle", None)
    return {"status": "healthy", "oracle": "enabled" if oracle is not None else "disabled"}
