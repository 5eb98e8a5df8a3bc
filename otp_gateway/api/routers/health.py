from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request):
    auth = request.app.state.auth
    return {
        "status": "ok",
        "mailer": "smtp" if auth.mailer.configured else "simulated",
        "stores": {
            "users": len(auth.users),
            "otps": len(auth.otps),
            "sessions": len(auth.sessions),
        },
    }


@router.get("/liveness")
async def liveness():
    return {"alive": True}
