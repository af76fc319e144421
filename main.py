"""
Main entry point for the Liquidity Engine
"""
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from liquidity.core.config import settings
from liquidity.core.database import init_db
from liquidity.core.exceptions import AlreadyExistsError
from liquidity.api.routes import api_router, public_router, set_services
from liquidity.core.locks import PoolLockRegistry
from liquidity.services.alert_events import AlertEventHandler
from liquidity.services.audit_service import AuditService
from liquidity.services.market_data_service import MarketDataService
from liquidity.services.notification_service import NotificationService
from liquidity.services.pool_accountant import PoolAccountant
from liquidity.services.snapshot_service import SnapshotService
from liquidity.services.valuation_service import ValuationRecalculator, ValuationScheduler

# Configure logging
log_dir = os.path.dirname(settings.LOG_FILE)
if log_dir:
    os.makedirs(log_dir, exist_ok=True)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(settings.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

# Global services
accountant = None
valuation_scheduler = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global accountant, valuation_scheduler

    logger.info("Starting Liquidity Engine...")

    # Initialize database
    await init_db()

    # Initialize services
    accountant = PoolAccountant(lock_registry=PoolLockRegistry())
    notification_service = NotificationService()
    market_data_service = MarketDataService()
    recalculator = ValuationRecalculator(accountant)
    valuation_scheduler = ValuationScheduler(recalculator, market_data_service.get_latest_prices)

    set_services(
        accountant,
        recalculator,
        market_data_service,
        AuditService(accountant),
        SnapshotService(accountant),
        AlertEventHandler(accountant, notification_service),
        notification_service,
    )

    if settings.AUTO_CREATE_POOLS:
        for name in settings.get_pool_names():
            try:
                await accountant.initialize_pool(name, settings.DEFAULT_INITIAL_CAPITAL, created_by="system")
            except AlreadyExistsError:
                logger.debug(f"Pool {name} already exists")

    # Start background tasks
    await valuation_scheduler.start()

    logger.info("Liquidity Engine started successfully!")

    yield

    # Cleanup
    logger.info("Shutting down Liquidity Engine...")
    if valuation_scheduler:
        await valuation_scheduler.stop()
    logger.info("Liquidity Engine stopped.")


# Create FastAPI app
app = FastAPI(
    title="Liquidity Engine",
    description="Capital pool allocation and position accounting",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")
app.include_router(public_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Liquidity Engine API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "pools": accountant.list_pools() if accountant else [],
        "valuation_scheduler": valuation_scheduler.is_running() if valuation_scheduler else False
    }


def main():
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )


if __name__ == "__main__":
    main()
