"""
Kiwify catalog and purchases - super admin only.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.academic import Course
from app.models.kiwify import KiwifyProduct, KiwifyPurchase
from app.schemas.kiwify import KiwifyProductCreate, KiwifyProductResponse, KiwifyPurchaseResponse
from app.auth.dependencies import require_super_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/kiwify", tags=["Kiwify"])


@router.get("/products", response_model=List[KiwifyProductResponse])
def list_kiwify_products(
    db: Session = Depends(get_db),
    _: None = Depends(require_super_admin),
):
    return db.query(KiwifyProduct).order_by(KiwifyProduct.id).all()


@router.post("/products", response_model=KiwifyProductResponse, status_code=status.HTTP_201_CREATED)
def create_kiwify_product(
    data: KiwifyProductCreate,
    db: Session = Depends(get_db),
    _: None = Depends(require_super_admin),
):
    existing = db.query(KiwifyProduct).filter(KiwifyProduct.kiwify_product_id == data.kiwify_product_id).first()
    if existing:
        raise HTTPException(status_code=400, detail="Kiwify product already mapped to a course")

    course = db.query(Course).filter(Course.id == data.course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    product = KiwifyProduct(
        kiwify_product_id=data.kiwify_product_id,
        course_id=data.course_id,
        name=data.name,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Mapped Kiwify product %s to course %s", product.kiwify_product_id, product.course_id)
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_kiwify_product(
    product_id: int,
    db: Session = Depends(get_db),
    _: None = Depends(require_super_admin),
):
    product = db.query(KiwifyProduct).filter(KiwifyProduct.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Kiwify product not found")
    db.delete(product)
    db.commit()


@router.get("/purchases", response_model=List[KiwifyPurchaseResponse])
def list_kiwify_purchases(
    status: Optional[str] = Query(None, description="Filter by Kiwify status, e.g. approved, refunded"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _: None = Depends(require_super_admin),
):
    query = db.query(KiwifyPurchase)
    if status:
        query = query.filter(KiwifyPurchase.status == status)
    return query.order_by(KiwifyPurchase.created_at.desc(), KiwifyPurchase.id.desc()).offset(offset).limit(limit).all()
