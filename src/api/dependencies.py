import os

from fastapi import Depends, Request

from api import state
from campaigns.campaign_service import CampaignService
from campaigns.delivery import EmailDelivery
from classification.task_classifier import TaskClassifier
from llm.llm_client import LLMClient
from orchestration.dispatcher import TaskDispatcher
from planning.planner import Planner
from presentation.pdf_renderer import PdfRenderer
from presentation.presentation_service import PresentationService
from storage.base import TaskStore
from taskagent.errors import InternalError, Unauthorized
from taskagent.models import CurrentUser

# Header set by the upstream auth layer once the session is verified.
AUTH_USER_HEADER = os.getenv("AUTH_USER_HEADER", "X-User-Id")


def get_current_user(request: Request) -> CurrentUser:
    user_id = request.headers.get(AUTH_USER_HEADER, "").strip()
    if not user_id:
        raise Unauthorized()
    return CurrentUser(id=user_id)


def get_store() -> TaskStore:
    if state.store is None:
        raise InternalError("Store not initialized")
    return state.store


def get_llm_client() -> LLMClient:
    if state.llm_client is None:
        raise InternalError("LLM client not initialized")
    return state.llm_client


def get_delivery() -> EmailDelivery:
    if state.delivery is None:
        raise InternalError("Email delivery not initialized")
    return state.delivery


def get_pdf_renderer() -> PdfRenderer:
    if state.pdf_renderer is None:
        raise InternalError("PDF renderer not initialized")
    return state.pdf_renderer


def get_planner(llm_client: LLMClient = Depends(get_llm_client)) -> Planner:
    return Planner(llm_client=llm_client)


def get_campaign_service(
    store: TaskStore = Depends(get_store),
    delivery: EmailDelivery = Depends(get_delivery),
) -> CampaignService:
    return CampaignService(store, delivery)


def get_presentation_service(
    store: TaskStore = Depends(get_store),
    renderer: PdfRenderer = Depends(get_pdf_renderer),
    llm_client: LLMClient = Depends(get_llm_client),
) -> PresentationService:
    return PresentationService(store, renderer, llm_client=llm_client)


def get_dispatcher(
    store: TaskStore = Depends(get_store),
    llm_client: LLMClient = Depends(get_llm_client),
    planner: Planner = Depends(get_planner),
    campaigns: CampaignService = Depends(get_campaign_service),
    presentations: PresentationService = Depends(get_presentation_service),
) -> TaskDispatcher:
    return TaskDispatcher(
        store,
        TaskClassifier(llm_client=llm_client),
        planner,
        campaigns,
        presentations,
    )
