from fastapi import APIRouter, Depends

from api.deps import get_services
from schemas.application import ChatRequest, QuoteRequest, QuoteResponse
from schemas.country import CountryConfig
from services.assistant import chat_reply
from services.container import Services
from services.countries import list_countries
from services.quotes import quote

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/countries", response_model=list[CountryConfig])
async def get_countries():
    return list_countries()


@router.post("/quote", response_model=QuoteResponse)
async def get_quote(body: QuoteRequest):
    return quote(body.country, body.amount, body.months)


@router.post("/chat")
async def chat(body: ChatRequest, services: Services = Depends(get_services)):
    reply = await chat_reply(services.providers, body.message, body.history, body.country, services.provider_timeout)
    return {"reply": reply}
