from fastapi import APIRouter, Depends, HTTPException

from interfaces.productModels import ProductResponse, ScanRequest, ScanResponse
from logger_manager import log_error, log_info
from services.product_service import ProductService, get_product_service

router = APIRouter()


@router.post("", response_model=ScanResponse)
async def submit_scan(request: ScanRequest, service: ProductService = Depends(get_product_service)):
    """Analyze the text read from a food label and store the resulting product."""
    log_info(f"Scan endpoint called with {len(request.raw_text)} characters")
    try:
        result = await service.submit_scan(request.raw_text, request.preferences)
        product = result.product
        return ScanResponse(
            product=ProductResponse.from_record(product),
            source=result.source,
            error_message=result.error_message,
            health_compatibility=service.calculate_health_compatibility(product, request.preferences),
            contains_user_allergens=service.contains_user_allergens(product, request.preferences),
        )
    except Exception as e:
        log_error(f"Error in submit_scan endpoint: {e}", e)
        raise HTTPException(status_code=500, detail=f"Error processing scan: {e}")
