from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from school_fees.api.v1.academic_years.router import router as academic_years_router
from school_fees.api.v1.fee_adjustments.router import router as fee_adjustments_router
from school_fees.api.v1.fee_items.discount_router import router as discounts_router
from school_fees.api.v1.fee_items.router import router as fee_items_router
from school_fees.api.v1.fees.router import router as fees_router
from school_fees.core.logging import setup_logging


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="School Fees Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(academic_years_router)
    app.include_router(fee_items_router)
    app.include_router(discounts_router)
    app.include_router(fee_adjustments_router)
    app.include_router(fees_router)

    return app


app = create_app()
