from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from interfaces.analysisModels import NarrativeNotes
from interfaces.productModels import NoteRequest, ProductResponse
from logger_manager import log_debug, log_error, log_info
from services.product_service import ProductService, get_product_service

router = APIRouter()


def _responses(products) -> List[ProductResponse]:
    return [ProductResponse.from_record(product) for product in products]


@router.get("/recent", response_model=List[ProductResponse])
def recent_products(limit: int = 10, service: ProductService = Depends(get_product_service)):
    log_info(f"Recent products endpoint called with limit {limit}")
    try:
        return _responses(service.recent(limit))
    except Exception as e:
        log_error(f"Error in recent_products endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/favorites", response_model=List[ProductResponse])
def favorite_products(service: ProductService = Depends(get_product_service)):
    log_info("Favorite products endpoint called")
    try:
        return _responses(service.favorites())
    except Exception as e:
        log_error(f"Error in favorite_products endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/search", response_model=List[ProductResponse])
def search_products(q: str = "", service: ProductService = Depends(get_product_service)):
    """Case-insensitive search over name, brand and ingredients."""
    log_info(f"Search endpoint called with query: {q}")
    try:
        return _responses(service.search(q))
    except Exception as e:
        log_error(f"Error in search_products endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/category/{category}", response_model=List[ProductResponse])
def products_by_category(category: str, service: ProductService = Depends(get_product_service)):
    log_info(f"Category endpoint called for: {category}")
    try:
        return _responses(service.by_category(category))
    except Exception as e:
        log_error(f"Error in products_by_category endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    log_info(f"Get product endpoint called for: {product_id}")
    try:
        product = service.get_product(product_id)
    except Exception as e:
        log_error(f"Error in get_product endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return ProductResponse.from_record(product)


@router.get("/{product_id}/notes", response_model=NarrativeNotes)
def get_product_notes(product_id: str, service: ProductService = Depends(get_product_service)):
    """Notes of a product decoded into their sections."""
    try:
        notes = service.get_notes(product_id)
    except Exception as e:
        log_error(f"Error in get_product_notes endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    if notes is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    log_debug(f"Notes for {product_id}: {len(notes.ingredient_explanations)} ingredient explanations")
    return notes


@router.post("/{product_id}/favorite")
def toggle_favorite(product_id: str, service: ProductService = Depends(get_product_service)):
    log_info(f"Toggle favorite endpoint called for: {product_id}")
    try:
        is_favorite = service.toggle_favorite(product_id)
    except Exception as e:
        log_error(f"Error in toggle_favorite endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    if is_favorite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return {"id": product_id, "is_favorite": is_favorite}


@router.post("/{product_id}/notes")
def add_note(product_id: str, note: NoteRequest, service: ProductService = Depends(get_product_service)):
    log_info(f"Add note endpoint called for: {product_id}")
    try:
        saved = service.add_note(product_id, note.text)
    except Exception as e:
        log_error(f"Error in add_note endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    if not saved:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return {"id": product_id, "user_notes": note.text}


@router.delete("")
def clear_all_products(service: ProductService = Depends(get_product_service)):
    log_info("Clear all products endpoint called")
    try:
        service.clear_all()
    except Exception as e:
        log_error(f"Error in clear_all_products endpoint: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return {"message": "All products deleted"}
