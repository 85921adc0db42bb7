"""Product wizard HTTP endpoints: 3-step product creation with save/resume.

Endpoints:
  GET   /api/product_wizard/        → reset the draft, 303 to the first step
  GET   /api/product_wizard/{step}  → draft + step for rendering
  PATCH /api/product_wizard/{step}  → submit a step (POST accepted too)
        303 → next step, or → /api/products/{id} once the last step commits
        422 → the step view again, with the errors for this step only

Design:
  - The session id travels in a cookie; the payload lives in the session
    store and is passed explicitly to ProductWizard.
  - Unknown steps are rejected before the session store is consulted.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from product_wizard.config import settings
from product_wizard.database import get_db
from product_wizard.middleware.exceptions import SessionStoreError
from product_wizard.schemas.product import ProductDraft
from product_wizard.schemas.wizard import WizardStepView
from product_wizard.services.wizard import ProductWizard
from product_wizard.utils.session_store import get_session_store

logger = logging.getLogger(__name__)

router = APIRouter()

wizard = ProductWizard()


# ── Helpers ──────────────────────────────────────────────────

def _attach_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def _session_id(request: Request) -> str:
    return request.cookies.get(settings.session_cookie_name) or uuid.uuid4().hex


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


# ── GET /api/product_wizard/ ─────────────────────────────────

@router.get("/", status_code=status.HTTP_303_SEE_OTHER)
async def start_wizard(
    request: Request,
    store=Depends(get_session_store),
):
    session_id = _session_id(request)
    session, first_step = wizard.start(await store.load(session_id))
    await store.save(session_id, session)

    response = _redirect(request.app.url_path_for("show_wizard_step", step=first_step))
    _attach_session_cookie(response, session_id)
    return response


# ── GET /api/product_wizard/{step} ───────────────────────────

@router.get("/{step}", response_model=WizardStepView, name="show_wizard_step")
async def show_step(
    step: str,
    request: Request,
    store=Depends(get_session_store),
):
    wizard.require_step(step)

    session_id = request.cookies.get(settings.session_cookie_name)
    session = await store.load(session_id) if session_id else {}
    return wizard.show(step, session)


# ── PATCH|POST /api/product_wizard/{step} ────────────────────

@router.api_route(
    "/{step}",
    methods=["PATCH", "POST"],
    response_model=WizardStepView,
    responses={303: {"description": "Step accepted"}},
)
async def update_step(
    step: str,
    request: Request,
    body: ProductDraft | None = None,
    db: AsyncSession = Depends(get_db),
    store=Depends(get_session_store),
):
    """Merge the submitted fields into the draft and validate this step."""
    wizard.require_step(step)

    session_id = _session_id(request)
    session = await store.load(session_id)
    submitted = body.model_dump(exclude_unset=True) if body else {}

    outcome = await wizard.update(db, step, submitted, session)

    if outcome.view is not None:
        response = JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=outcome.view.model_dump(mode="json"),
        )
    elif outcome.complete:
        # The product is already committed; a draft that cannot be cleared
        # must not stay reachable, or resubmitting would create it twice
        try:
            await store.save(session_id, outcome.session)
        except SessionStoreError:
            logger.error(
                f"Could not clear wizard draft after creating product {outcome.record.id}",
                extra={"product_id": outcome.record.id},
            )
            session_id = uuid.uuid4().hex
        response = _redirect(
            request.app.url_path_for("get_product", product_id=outcome.record.id)
        )
    else:
        await store.save(session_id, outcome.session)
        response = _redirect(
            request.app.url_path_for("show_wizard_step", step=outcome.next_step)
        )

    _attach_session_cookie(response, session_id)
    return response
