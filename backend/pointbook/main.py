import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis
from redis.exceptions import RedisError

from .config import settings
from .errors import DomainException, ValidationException
from .redis_client import get_redis
from .routers import admin, courses, profiles, reservations, schedules, slots

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pointbook Booking API")


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed body or query: same envelope as service-level validation errors
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return await domain_exception_handler(
        request,
        ValidationException("Invalid request", details={"errors": errors}),
    )


app.include_router(slots.router)
app.include_router(reservations.router)
app.include_router(profiles.router)
app.include_router(courses.router)
app.include_router(schedules.router)
app.include_router(admin.router)


@app.get("/health")
def health(redis: Redis | None = Depends(get_redis)):
    if redis is None:
        return {"redis": "disabled"}
    try:
        return {"redis": redis.ping()}
    except RedisError:
        logger.exception("Redis health check failed")
        return {"redis": False}
