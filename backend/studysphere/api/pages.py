# studysphere/api/pages.py
from datetime import datetime
from html import escape

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(include_in_schema=False)

PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>{title} - StudySphere</title></head>
<body>
<nav><a href="/chat">Chat</a> <a href="/archive">Archive</a> <a href="/settings">Settings</a></nav>
<main>{body}</main>
</body>
</html>"""


def greeting(now: datetime) -> str:
    if now.hour < 12:
        return "Morning"
    if now.hour < 18:
        return "Afternoon"
    return "Evening"


def render(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(PAGE.format(title=escape(title), body=body))


def first_name(request: Request) -> str:
    session = getattr(request.state, "auth_session", None)
    if session is None:
        return "there"
    return session.user.display_name.split(" ")[0] or "there"


@router.get("/chat")
async def chat_page(request: Request) -> HTMLResponse:
    return render("Chat", f"<h1>Good {greeting(datetime.now())}, {escape(first_name(request))}</h1>")


@router.get("/archive")
async def archive_page(request: Request) -> HTMLResponse:
    return render("Archive", "<h1>Archive</h1><p>Your archived conversations will appear here.</p>")


@router.get("/settings")
async def settings_page(request: Request) -> HTMLResponse:
    return render("Settings", f"<h1>Settings</h1><p>Signed in as {escape(first_name(request))}.</p>")


@router.get("/login")
async def login_page() -> HTMLResponse:
    return render("Login", "<h1>Sign in</h1><p>Sign in with your StudySphere account to continue.</p>")
