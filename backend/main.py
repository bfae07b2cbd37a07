from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from db.database import create_db_and_tables
from core.config import settings
from core.errors import setup_exception_handlers
from core.logging import configure_logging
from routers.inventory import router as inventory_router
from routers.orders import router as orders_router
from routers.recipes import router as recipes_router
from routers.ingredients import router as ingredients_router
from contextlib import asynccontextmanager

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Branch Inventory API",
    description="Per-branch ingredient stock ledger for the coffee shop POS",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}


# Stock ledger routes
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(orders_router, prefix="/orders", tags=["orders"])

# Reference data
app.include_router(recipes_router, prefix="/recipes", tags=["recipes"])
app.include_router(ingredients_router, prefix="/ingredients", tags=["ingredients"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
