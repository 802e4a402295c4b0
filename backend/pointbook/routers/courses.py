# backend/pointbook/routers/courses.py
# Catalog: PATCH = admin, DELETE = not exposed (reservations keep referencing courses)

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import atomic, get_db
from ..errors import NotFoundException
from ..models import Courses
from ..schemas.courses import CourseCreate, CourseRead, CourseUpdate
from ..services.profiles import require_admin

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("/", response_model=list[CourseRead])
def list_courses(db: Session = Depends(get_db)):
    return db.query(Courses).order_by(Courses.created_at, Courses.id).all()


@router.get("/{id}", response_model=CourseRead)
def get_course(id: int, db: Session = Depends(get_db)):
    obj = db.get(Courses, id)
    if not obj:
        raise NotFoundException(f"Course {id} not found", details={"course_id": id})
    return obj


@router.post("/", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    data: CourseCreate,
    db: Session = Depends(get_db),
):
    with atomic(db):
        require_admin(db, data.admin_id)
        obj = Courses(**data.model_dump(exclude={"admin_id"}))
        db.add(obj)
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=CourseRead)
def update_course(
    id: int,
    data: CourseUpdate,
    db: Session = Depends(get_db),
):
    """
    Price changes apply to future bookings; cancellations refund the
    current price (see reservation_ledger.cancel).
    """
    with atomic(db):
        require_admin(db, data.admin_id)
        obj = db.get(Courses, id)
        if not obj:
            raise NotFoundException(f"Course {id} not found", details={"course_id": id})

        for field, value in data.model_dump(exclude_unset=True, exclude={"admin_id"}).items():
            if value is None and field != "description":
                continue
            setattr(obj, field, value)
    db.refresh(obj)
    return obj
