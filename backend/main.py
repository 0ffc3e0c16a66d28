from __future__ import annotations
from contextlib import asynccontextmanager
from dataclasses import asdict
from functools import lru_cache
from typing import Optional
from urllib.parse import urlencode
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from checkout import CheckoutSession, validation_policy
from config import Settings, get_settings
from database import MongoOrderStore
from errors import PersistenceError, ValidationError
from funnel import funnel_query, resolve_order_intent
from logconfig import bind_order_context, clear_order_context, configure_logging, get_logger
from orders import OrderSubmissionService
from pricing import compute_breakdown, line_item_description, pricing_policy
from routing import PaymentChannelRouter
from schemas import CheckoutRequest, OrderRecord, QuoteOut

logger = get_logger(__name__)


@lru_cache
def get_store() -> MongoOrderStore:
    return MongoOrderStore(get_settings())


@lru_cache
def get_router() -> PaymentChannelRouter:
    return PaymentChannelRouter.from_settings(get_settings())


def get_service(
    store: MongoOrderStore = Depends(get_store), settings: Settings = Depends(get_settings)
) -> OrderSubmissionService:
    return OrderSubmissionService(store, pricing_policy(settings.PRICING_POLICY))


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    if get_store.cache_info().currsize:
        get_store().close()


app = FastAPI(title="Eubiosis Checkout API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _refuse(error: ValidationError) -> HTTPException:
    logger.info("Checkout refused", fields=error.fields, codes=error.codes)
    return HTTPException(status_code=422, detail=[asdict(f) for f in error.failures])


@app.get("/")
async def root():
    return {"message": "Eubiosis Checkout Backend Running"}


@app.get("/test")
async def test(store: MongoOrderStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    ok = await store.ping()
    return {
        "backend": "✅ Running",
        "database": "✅ Available" if ok else "❌ Not Available",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Connected" if ok else "Not Connected",
        "pricing_policy": settings.PRICING_POLICY,
        "validation_policy": settings.VALIDATION_POLICY,
    }


@app.get("/funnel/quote", response_model=QuoteOut)
async def quote(request: Request, settings: Settings = Depends(get_settings)):
    intent = resolve_order_intent(request.query_params)
    if request.query_params.get("irresistibleOffer") == "true" and not intent.took_big_offer:
        intent = intent.model_copy(update={"irresistible_offer_accepted": True})
    return QuoteOut(
        intent=intent,
        breakdown=compute_breakdown(intent, pricing_policy(settings.PRICING_POLICY)),
        line_item=line_item_description(intent),
    )


@app.get("/funnel/oto-redirect")
async def oto_redirect(request: Request, offer: str = Query(...), price: str = Query(...)):
    # Taking a one-time offer means the big offer was passed over.
    params = {**request.query_params, "oto": offer, "otoPrice": price, "tookBigOffer": "false"}
    intent = resolve_order_intent(params)
    if intent.oto is None:
        raise HTTPException(status_code=400, detail="Invalid OTO offer")
    return {"url": f"/checkout?{urlencode(funnel_query(intent))}"}


@app.get("/payment/channels")
async def payment_channels(province: Optional[str] = Query(None), router: PaymentChannelRouter = Depends(get_router)):
    return [asdict(d) for d in router.available_channels(province)]


@app.post("/orders", response_model=OrderRecord, status_code=201)
async def create_order(
    payload: CheckoutRequest,
    router: PaymentChannelRouter = Depends(get_router),
    service: OrderSubmissionService = Depends(get_service),
    settings: Settings = Depends(get_settings),
):
    intent = resolve_order_intent(payload.params)
    bind_order_context(size=intent.size.value, quantity=intent.quantity)
    try:
        session = CheckoutSession(
            intent,
            router,
            pricing_policy=service.pricing_policy,
            validation_policy=validation_policy(settings.VALIDATION_POLICY),
        )
        error = session.update_customer(**payload.customer.model_dump())
        if error is None:
            error = session.advance()
        if error is None:
            session.select_payment_method(payload.payment_method)
            error = session.set_irresistible_offer(payload.irresistible_offer_accepted)
        if error is not None:
            raise _refuse(error)

        result = await session.submit(service)
        if isinstance(result, ValidationError):
            raise _refuse(result)
        if isinstance(result, PersistenceError):
            logger.warning("Order could not be saved", error=result.message)
            raise HTTPException(status_code=502, detail=result.message)
        return result
    finally:
        clear_order_context()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
