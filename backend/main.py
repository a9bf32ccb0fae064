from fastapi import FastAPI
from database import create_db_and_tables
from contextlib import asynccontextmanager
from logger import get_logger

logger = get_logger("main")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables plus the seeded gold/silver metals
    create_db_and_tables()
    logger.info("Database ready")
    yield

app = FastAPI(lifespan=lifespan, title="Metal Ledger API")

from fastapi.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from routers import metals, veparis, transactions, customers, reports, backup
app.include_router(metals.router)
app.include_router(veparis.router)
app.include_router(transactions.router)
app.include_router(customers.router)
app.include_router(reports.router)
app.include_router(backup.router)

@app.get("/")
def read_root():
    return {"message": "Welcome to Metal Ledger API"}
