import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from chains.solana_helius import first_transaction
from chains.tx_filter import FilterConfig, TransactionFilter
from core.analyzer import WalletActivityAnalyzer
from core.config import Settings, load_settings
from core.engine import AlertThresholds, TradePipeline
from core.http import build_session
from core.logger import configure_logging
from core.store import TradeStore
from core.symbol_cache import SymbolCache
from core.telegram_client import TelegramClient
from enrich.dexscreener import DexscreenerClient
from enrich.prices import PriceOracle
from enrich.shyft import ShyftParser
from enrich.sol_price import SolPriceCache
from enrich.supply import SolanaSupplyClient

logger = logging.getLogger(__name__)

# ============================================================
# WIRING
# ============================================================

def build_pipeline(settings: Settings, store: Optional[TradeStore] = None) -> TradePipeline:
    store = store or TradeStore(settings.database_url)
    timeout = settings.http_timeout_sec

    def session(methods=("GET", "POST")):
        return build_session(
            retries=settings.http_retries,
            backoff_factor=settings.http_backoff,
            allowed_methods=methods,
        )

    dex = DexscreenerClient(session=session(), timeout_sec=timeout)
    oracle = PriceOracle(
        native=SolPriceCache(dex, ttl_seconds=settings.sol_price_ttl_sec),
        market=dex,
    )
    supply = SolanaSupplyClient(settings.rpc_endpoint, session=session(), timeout_sec=timeout)
    analyzer = WalletActivityAnalyzer(store, oracle, supply)

    parser = None
    if settings.shyft_api_key:
        parser = ShyftParser(settings.shyft_api_key, session=session(), timeout_sec=timeout)

    notifier = None
    if settings.telegram_enabled:
        notifier = TelegramClient(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            # connect errors still retry; a read timeout must not resend the message
            session=session(methods=("GET",)),
            timeout_sec=timeout,
        )

    return TradePipeline(
        tx_filter=TransactionFilter(FilterConfig.from_settings(settings)),
        store=store,
        analyzer=analyzer,
        market=dex,
        symbol_cache=SymbolCache(settings.symbol_cache_ttl_days),
        thresholds=AlertThresholds.from_settings(settings),
        parser=parser,
        notifier=notifier,
    )

# ============================================================
# FASTAPI APP
# ============================================================

def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[TradePipeline] = None,
) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, settings.log_format)
        if app.state.pipeline is None:
            store = TradeStore(settings.database_url)
            store.init_db()
            app.state.pipeline = build_pipeline(settings, store=store)
        if not settings.helius_auth_header:
            logger.warning("HELIUS_AUTH_HEADER not set, webhook is unauthenticated")
        if not settings.telegram_enabled:
            logger.warning("Telegram not configured, alerts will not be sent")
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.pipeline = pipeline

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/helius")
    async def helius_webhook(request: Request):
        expected = settings.helius_auth_header
        if expected and request.headers.get("Authorization", "") != expected:
            raise HTTPException(status_code=401, detail="Unauthorized")

        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON")

        tx = first_transaction(payload)
        if tx is None:
            logger.warning("Empty transaction data received")
            return {"skipped": True, "message": "Empty data"}

        pipeline: TradePipeline = request.app.state.pipeline
        try:
            # sync pipeline (requests + SQLAlchemy) off the event loop
            result = await asyncio.to_thread(pipeline.handle_transaction, tx)
        except SQLAlchemyError:
            logger.exception("Error storing trade", extra={"signature": tx.get("signature")})
            raise HTTPException(status_code=500, detail="database error")

        return result.to_response()

    return app


app = create_app()


def main() -> None:
    # Helius requires a public HTTPS URL; run behind a tunnel or proxy for local tests.
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))


if __name__ == "__main__":
    main()
