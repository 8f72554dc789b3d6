"""
HTTP surface for the support bot.

``POST /api`` answers one chat message; the ``/api/tickets`` and
``/api/messages`` routes expose the ticket store. Every response carries
an ``X-Request-ID`` header, and every error has the shape
``{"error": {"message", "code", "timestamp", "requestId"}}``.

The conversation pipeline is blocking, so each chat message runs on a
worker thread under the overall request timeout. A timed-out request
returns 408; the worker finishes in the background and its side
effects are not rolled back.
"""

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from support_bot.config import AppConfig, settings
from support_bot.conversation.call_monitor import CallStatusPoller
from support_bot.conversation.classifier import Classifier
from support_bot.conversation.guardrails import GuardrailPipeline
from support_bot.conversation.responder import ReplyGenerator
from support_bot.conversation.session import ConversationSession
from support_bot.handlers import IntentRouter, Services
from support_bot.logging_context import get_request_id, get_request_logger, new_request_id, set_request_id
from support_bot.rate_limiter import FixedWindowRateLimiter
from support_bot.schemas.api_schema import (
    AdminToggleRequest,
    ChatRequest,
    ChatResponse,
    CreateTicketRequest,
    ErrorBody,
    ErrorResponse,
)
from support_bot.tools.address_parser import AddressParser
from support_bot.tools.commerce import ShopifyClient
from support_bot.tools.geocoding import GoogleGeocoder
from support_bot.tools.llm import LLMClient
from support_bot.tools.mailer import SendGridMailer
from support_bot.tools.telephony import CallBridgeClient
from support_bot.tools.tickets import InMemoryTicketStore, TicketStore

logger = get_request_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class APIError(Exception):
    """An error with a fixed HTTP status and machine-readable code."""

    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_SERVER_ERROR") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


def error_payload(message: str, code: str, request_id: str) -> dict[str, Any]:
    body = ErrorBody(
        message=message,
        code=code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        request_id=request_id,
    )
    return ErrorResponse(error=body).model_dump(by_alias=True)


def _validation_message(exc: ValidationError | RequestValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "Invalid request")
    return f"{location}: {detail}" if location else detail


def create_app(
    session: ConversationSession,
    ticket_store: TicketStore,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
    executor: Optional[ThreadPoolExecutor] = None,
    config: Optional[AppConfig] = None,
) -> FastAPI:
    """Build the FastAPI application around an already-wired session."""
    config = config or settings
    executor = executor or ThreadPoolExecutor(
        max_workers=config.server.worker_threads, thread_name_prefix="chat",
    )
    app = FastAPI(title=f"{config.store.name} Support Bot API", version="1.0.0")

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = new_request_id()
        set_request_id(request_id)
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log("Request failed with %s: %s", exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.message, exc.code, get_request_id()),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        logger.warning("Invalid request: %s", message)
        return JSONResponse(
            status_code=400,
            content=error_payload(message, "INVALID_REQUEST", get_request_id()),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.post("/api")
    async def chat(request: Request) -> JSONResponse:
        content_type = request.headers.get("content-type", "")
        if not content_type.lower().startswith("application/json"):
            raise APIError("Content-Type must be application/json", 415, "INVALID_CONTENT_TYPE")

        try:
            body = await request.json()
        except ValueError:
            raise APIError("Request body is not valid JSON", 400, "INVALID_REQUEST")
        try:
            payload = ChatRequest.model_validate(body)
        except ValidationError as exc:
            raise APIError(_validation_message(exc), 400, "INVALID_REQUEST")

        client_key = payload.client_id or (request.client.host if request.client else "anonymous")
        if rate_limiter is not None and not rate_limiter.check_and_increment(client_key):
            raise APIError("Too many requests, please slow down", 429, "RATE_LIMITED")

        logger.info("Chat message received (%d chars, %d context turns)", len(payload.message), len(payload.context))
        work = contextvars.copy_context()
        future = executor.submit(
            work.run, session.handle, payload.message, payload.context, payload.current_ticket,
        )
        try:
            result = await asyncio.wait_for(
                asyncio.wrap_future(future), timeout=config.server.request_timeout_sec,
            )
        except asyncio.TimeoutError:
            raise APIError("The request took too long to process", 408, "REQUEST_TIMEOUT")
        except Exception as exc:
            logger.exception("Unhandled error while answering message")
            raise APIError("An unexpected error occurred", 500, "INTERNAL_SERVER_ERROR") from exc

        response = ChatResponse(
            response=result.reply,
            updated_ticket=result.updated_ticket,
            classification=result.classification,
            automated=result.automated,
            request_id=get_request_id(),
        )
        return JSONResponse(content=response.model_dump(by_alias=True, mode="json"))

    @app.post("/api/tickets", status_code=201)
    async def create_ticket(payload: CreateTicketRequest) -> JSONResponse:
        ticket = ticket_store.create_ticket()
        ticket_store.add_message(ticket.id, "user", payload.message)
        return JSONResponse(status_code=201, content=ticket.model_dump(by_alias=True, mode="json"))

    @app.get("/api/tickets/{ticket_id}")
    async def get_ticket(ticket_id: str) -> JSONResponse:
        ticket = ticket_store.get_ticket(ticket_id)
        if ticket is None:
            raise APIError(f"Ticket {ticket_id} not found", 404, "TICKET_NOT_FOUND")
        return JSONResponse(content=ticket.model_dump(by_alias=True, mode="json"))

    @app.get("/api/messages")
    async def get_messages(ticketId: Optional[str] = None) -> JSONResponse:
        if not ticketId:
            raise APIError("ticketId is required", 400, "INVALID_REQUEST")
        if ticket_store.get_ticket(ticketId) is None:
            raise APIError(f"Ticket {ticketId} not found", 404, "TICKET_NOT_FOUND")
        messages = ticket_store.get_messages(ticketId)
        return JSONResponse(content=[m.model_dump(by_alias=True, mode="json") for m in messages])

    @app.post("/api/tickets/{ticket_id}/admin")
    async def toggle_admin(ticket_id: str, payload: AdminToggleRequest) -> JSONResponse:
        ticket = ticket_store.set_admin(ticket_id, payload.admin)
        if ticket is None:
            raise APIError(f"Ticket {ticket_id} not found", 404, "TICKET_NOT_FOUND")
        return JSONResponse(content=ticket.model_dump(by_alias=True, mode="json"))

    return app


def build_services(config: Optional[AppConfig] = None) -> tuple[Services, LLMClient]:
    """Wire the production adapters from configuration."""
    config = config or settings
    llm = LLMClient(config.model)
    guardrails = GuardrailPipeline()
    telephony = CallBridgeClient(config.telephony)
    services = Services(
        replies=ReplyGenerator(llm, guardrails),
        commerce=ShopifyClient(AddressParser(llm), config.commerce),
        geocoder=GoogleGeocoder(config.geocoding),
        telephony=telephony,
        call_poller=CallStatusPoller(telephony, config.telephony),
        mailer=SendGridMailer(config.email),
        store=config.store,
    )
    return services, llm


def build_session(
    config: Optional[AppConfig] = None,
    ticket_store: Optional[TicketStore] = None,
) -> ConversationSession:
    services, llm = build_services(config)
    classifier = Classifier(llm, product_titles=services.commerce.list_active_product_titles)
    return ConversationSession(classifier, IntentRouter(services), ticket_store)


def build_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Production application: real adapters and an in-process ticket store."""
    config = config or settings
    ticket_store = InMemoryTicketStore()
    return create_app(
        session=build_session(config, ticket_store),
        ticket_store=ticket_store,
        rate_limiter=FixedWindowRateLimiter(config.rate_limit),
        config=config,
    )
