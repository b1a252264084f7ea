from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.api.routers import auth, carts, checkout, currency, health
from storefront.domain.errors import CurrencyConversionError


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Cart Service",
        version="1.0.0",
    )

    app.include_router(health.router)
    app.include_router(currency.router)
    app.include_router(carts.router)
    app.include_router(auth.router)
    app.include_router(checkout.router)

    #a cart that cannot be priced in any currency, on every cart route
    @app.exception_handler(CurrencyConversionError)
    def conversion_failed(request: Request, exc: CurrencyConversionError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app
