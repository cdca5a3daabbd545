import logging

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

import settings
from gateway import create_http_client
from routers import admin, auth, discovery, pages, premium, registration
from routers.auth import AuthDep, render

log = structlog.get_logger(__name__)

app = FastAPI(title="AuraCare")
app.state.admin_in_flight = set()

# No max_age: the cookie goes away with the browser session
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    session_cookie=settings.SESSION_COOKIE,
    max_age=None,
    same_site="lax",
)

app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")


@app.on_event("startup")
async def on_startup() -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
        ),
    )
    app.state.http_client = create_http_client()
    log.info("frontend_started", api_url=settings.API_URL)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await app.state.http_client.aclose()


@app.get("/", response_class=HTMLResponse)
def read_root(request: Request, auth: AuthDep):
    return render(request, auth, "index.html")


app.include_router(auth.router)
app.include_router(pages.router)
app.include_router(registration.router)
app.include_router(discovery.router)
app.include_router(premium.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
