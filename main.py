import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Form, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import controllers
import database
import querystring
from auth import (
    TokenResponse,
    create_access_token,
    get_caller,
    get_password_hash,
    public_user,
    require_permission,
    require_user,
    verify_password,
)
from log import configure_logging
from permissions import AUTHENTICATED, PUBLIC, bootstrap_permissions
from querystring import QueryError
from schemas import User

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.get_db() is not None:
        bootstrap_permissions()
    else:
        logger.warning("Database not configured, skipping permission bootstrap")
    yield


# ----------------------------------------------------------------------------
# App & CORS
# ----------------------------------------------------------------------------
app = FastAPI(title="Casino Content API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------------------------------------------------------------
# Error envelope
# ----------------------------------------------------------------------------
ERROR_NAMES = {
    400: "ValidationError",
    401: "UnauthorizedError",
    403: "ForbiddenError",
    404: "NotFoundError",
    405: "MethodNotAllowedError",
    503: "ServiceUnavailableError",
}


def error_response(status: int, message: Any) -> JSONResponse:
    body = {
        "data": None,
        "error": {
            "status": status,
            "name": ERROR_NAMES.get(status, "ApplicationError"),
            "message": message if isinstance(message, str) else str(message),
        },
    }
    return JSONResponse(status_code=status, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "; ".join(str(e.get("msg")) for e in exc.errors()) or "Invalid request")


@app.exception_handler(QueryError)
async def query_error_handler(request: Request, exc: QueryError):
    return error_response(400, str(exc))


@app.exception_handler(database.DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: database.DatabaseUnavailable):
    return error_response(503, str(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal Server Error")


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------

def read_query(request: Request) -> Dict[str, Any]:
    return querystring.parse(request.query_params.multi_items())


def read_data(payload: Any) -> Dict[str, Any]:
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail='Missing "data" payload in the request body')
    return data


def wants_preview(query: Dict[str, Any], caller: dict) -> bool:
    return query.get("publicationState") == "preview" and caller["role"] != PUBLIC


# ----------------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------------
@app.get("/")
async def read_root():
    return {"message": "Casino Content API Running"}


@app.get("/_health")
async def health():
    return {"status": "ok"}


@app.get("/test")
async def test_database():
    db = database.get_db()
    if db is None:
        return {
            "backend": "✅ Running",
            "database": "❌ Database not initialized",
            "database_url": "Set" if os.getenv("DATABASE_URL") else "Not Set",
            "database_name": "Set" if os.getenv("DATABASE_NAME") else "Not Set",
        }
    return {
        "backend": "✅ Running",
        "database": "✅ Connected & Working",
        "database_name": db.name,
        "collections": db.list_collection_names(),
    }


# ----------------------------------------------------------------------------
# Auth Endpoints
# ----------------------------------------------------------------------------

class LocalLogin(BaseModel):
    identifier: str
    password: str


def _authenticate(identifier: str, password: str) -> dict:
    user = database.get_document("user", {"$or": [{"email": identifier}, {"username": identifier}]})
    if not user or not verify_password(password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return user


@app.post("/api/auth/local")
async def login_local(payload: LocalLogin):
    user = _authenticate(payload.identifier, payload.password)
    token = create_access_token({"sub": user["email"], "role": user.get("role", AUTHENTICATED)})
    return {"jwt": token, "user": public_user(user)}


@app.post("/api/auth/login", response_model=TokenResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends()):
    user = _authenticate(form_data.username, form_data.password)
    token = create_access_token({"sub": user["email"], "role": user.get("role", AUTHENTICATED)})
    return TokenResponse(access_token=token)


@app.post("/api/auth/seed-admin")
async def seed_admin(
    email: str = Form(...),
    password: str = Form(...),
    username: Optional[str] = Form(None),
    x_admin_secret: Optional[str] = Header(default=None),
):
    # simple guard to prevent open seeding in prod
    if config.ADMIN_SECRET and x_admin_secret != config.ADMIN_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if database.get_document("user", {"email": email}):
        return {"status": "exists"}
    user = User(username=username or email.split("@")[0], email=email, password_hash=get_password_hash(password))
    inserted_id = database.create_document("user", user)
    logger.info("Seeded user %s", email)
    return {"id": inserted_id, "status": "created"}


@app.get("/api/users/me")
async def read_me(caller: dict = Depends(require_user)):
    return caller["user"]


# ----------------------------------------------------------------------------
# Custom content routes (declared before the /{id} routes they would shadow)
# ----------------------------------------------------------------------------
articles = controllers.articles
casinos = controllers.casinos
slots = controllers.slots
bonuses = controllers.bonuses
comments = controllers.comments
categories = controllers.categories


def find_permission(controller):
    return Depends(require_permission(controller.ct.action("find")))


@app.get("/api/articles/featured", dependencies=[find_permission(articles)])
async def featured_articles(request: Request):
    query = read_query(request)
    return articles.featured(controllers.parse_limit(query, 6), query.get("locale"))


@app.get("/api/articles/popular", dependencies=[find_permission(articles)])
async def popular_articles(request: Request):
    query = read_query(request)
    return articles.popular(controllers.parse_limit(query, 6), query.get("locale"))


@app.get("/api/casino-reviews/top-rated", dependencies=[find_permission(casinos)])
async def top_rated_casinos(request: Request):
    query = read_query(request)
    return casinos.top_rated(controllers.parse_limit(query, 10), query.get("locale"))


@app.get("/api/casino-reviews/license/{license_name}", dependencies=[find_permission(casinos)])
async def casinos_by_license(license_name: str, request: Request):
    return casinos.by_license(license_name, read_query(request).get("locale"))


@app.get("/api/slots/popular", dependencies=[find_permission(slots)])
async def popular_slots(request: Request):
    query = read_query(request)
    return slots.popular(controllers.parse_limit(query, 12), query.get("locale"))


@app.get("/api/slots/high-rtp", dependencies=[find_permission(slots)])
async def high_rtp_slots(request: Request):
    query = read_query(request)
    return slots.high_rtp(controllers.parse_limit(query, 12), query.get("locale"))


@app.get("/api/slots/provider/{provider}", dependencies=[find_permission(slots)])
async def slots_by_provider(provider: str, request: Request):
    return slots.by_provider(provider, read_query(request).get("locale"))


@app.get("/api/bonuses/featured", dependencies=[find_permission(bonuses)])
async def featured_bonuses(request: Request):
    query = read_query(request)
    return bonuses.featured(controllers.parse_limit(query, 6), query.get("locale"))


@app.get("/api/bonuses/type/{bonus_type}", dependencies=[find_permission(bonuses)])
async def bonuses_by_type(bonus_type: str, request: Request):
    query = read_query(request)
    return bonuses.by_type(bonus_type, controllers.parse_limit(query, 20), query.get("locale"))


@app.get("/api/bonuses/casino/{casino_id}", dependencies=[find_permission(bonuses)])
async def bonuses_by_casino(casino_id: str, request: Request):
    return bonuses.by_casino(casino_id, read_query(request).get("locale"))


@app.get("/api/comments/stats", dependencies=[find_permission(comments)])
async def comments_stats():
    return comments.stats()


@app.get("/api/comments/casino/{casino_id}", dependencies=[find_permission(comments)])
async def comments_by_casino(casino_id: str, request: Request):
    query = read_query(request)
    return comments.by_casino(casino_id, controllers.parse_limit(query, 10), query.get("locale"))


@app.get("/api/comments/article/{article_id}", dependencies=[find_permission(comments)])
async def comments_by_article(article_id: str, request: Request):
    query = read_query(request)
    return comments.by_article(article_id, controllers.parse_limit(query, 10), query.get("locale"))


@app.get("/api/comments/slot/{slot_id}", dependencies=[find_permission(comments)])
async def comments_by_slot(slot_id: str, request: Request):
    query = read_query(request)
    return comments.by_slot(slot_id, controllers.parse_limit(query, 10), query.get("locale"))


@app.get("/api/categories/featured", dependencies=[find_permission(categories)])
async def featured_categories(request: Request):
    query = read_query(request)
    return categories.featured(controllers.parse_limit(query, 6), query.get("locale"))


@app.get("/api/categories/{category_id}/stats", dependencies=[find_permission(categories)])
async def category_stats(category_id: str):
    return categories.stats(category_id)


# ----------------------------------------------------------------------------
# Generic CRUD per content type
# ----------------------------------------------------------------------------

def register_crud(controller) -> None:
    base = f"/api/{controller.ct.plural}"
    tag = controller.ct.plural

    async def find(request: Request, caller: dict = Depends(require_permission(controller.ct.action("find")))):
        query = read_query(request)
        return controller.find(query, preview=wants_preview(query, caller))

    async def find_one(
        entity_id: str,
        request: Request,
        caller: dict = Depends(require_permission(controller.ct.action("findOne"))),
    ):
        query = read_query(request)
        return controller.find_one(entity_id, query, preview=wants_preview(query, caller))

    async def create(
        payload: Any = Body(...),
        caller: dict = Depends(require_permission(controller.ct.action("create"))),
    ):
        return controller.create(read_data(payload))

    async def update(
        entity_id: str,
        payload: Any = Body(...),
        caller: dict = Depends(require_permission(controller.ct.action("update"))),
    ):
        return controller.update(entity_id, read_data(payload))

    async def delete(
        entity_id: str,
        caller: dict = Depends(require_permission(controller.ct.action("delete"))),
    ):
        return controller.delete(entity_id)

    app.add_api_route(base, find, methods=["GET"], tags=[tag], name=f"{tag}.find")
    app.add_api_route(f"{base}/{{entity_id}}", find_one, methods=["GET"], tags=[tag], name=f"{tag}.findOne")
    app.add_api_route(base, create, methods=["POST"], tags=[tag], name=f"{tag}.create")
    app.add_api_route(f"{base}/{{entity_id}}", update, methods=["PUT"], tags=[tag], name=f"{tag}.update")
    app.add_api_route(f"{base}/{{entity_id}}", delete, methods=["DELETE"], tags=[tag], name=f"{tag}.delete")


for _controller in controllers.CONTROLLERS.values():
    register_crud(_controller)


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    port = int(os.getenv("PORT", 1337))
    uvicorn.run(app, host="0.0.0.0", port=port)
