from fastapi import APIRouter
from ..connectivity import get_network_type, is_network_available

router = APIRouter(prefix="/network", tags=["network"])


@router.get("/type")
def network_type():
    return {"network_type": get_network_type().value}


@router.get("/available")
def network_available():
    return {"available": is_network_available()}
