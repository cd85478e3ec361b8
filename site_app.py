import logging
import os

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

import content
import pages
from locales import DEFAULT_LOCALE, LOCALES, localize_path, resolve_locale
from log import configure_logging
from navigation import switch_locale_url
from schemas import CommentCreate

logger = logging.getLogger(__name__)

app = FastAPI(title="Casino Content Site")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/locale-switch")
async def locale_switch(path: str = "/", locale: str = DEFAULT_LOCALE):
    target = await switch_locale_url(path, locale)
    return {"path": target, "locale": resolve_locale(locale)}


@app.post("/api/comments")
async def submit_comment(payload: CommentCreate, locale: str = DEFAULT_LOCALE):
    comment = await content.create_comment(payload.model_dump(exclude_none=True), resolve_locale(locale))
    if comment is None:
        raise HTTPException(status_code=502, detail="Comment could not be submitted")
    return {"data": comment}


@app.get("/{full_path:path}")
async def render_page(full_path: str, request: Request):
    segments = [segment for segment in full_path.split("/") if segment]
    locale = DEFAULT_LOCALE
    if segments and segments[0] in LOCALES:
        if segments[0] == DEFAULT_LOCALE:
            # the default locale is never prefixed
            target = localize_path(DEFAULT_LOCALE, "/" + "/".join(segments[1:]))
            if request.url.query:
                target = f"{target}?{request.url.query}"
            return RedirectResponse(target, status_code=308)
        locale = segments.pop(0)

    if not segments:
        return await pages.home_page(locale)
    if len(segments) == 1 and segments[0] in pages.LIST_PAGES:
        return await pages.LIST_PAGES[segments[0]](locale)
    if len(segments) == 2 and segments[0] in pages.DETAIL_PAGES:
        page = await pages.DETAIL_PAGES[segments[0]](locale, segments[1])
        if page is not None:
            return page
    logger.info("Page not found: /%s", full_path)
    raise HTTPException(status_code=404, detail="Page not found")


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    port = int(os.getenv("SITE_PORT", 3000))
    uvicorn.run(app, host="0.0.0.0", port=port)
