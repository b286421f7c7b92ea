from fastapi import APIRouter, Depends

from modsquad.services.car_data import CarDataService, get_car_data_service

router = APIRouter(prefix="/cars", tags=["cars"])


@router.get("/{year}/makes", response_model=list[str])
def get_makes(year: str, cars: CarDataService = Depends(get_car_data_service)) -> list[str]:
    return cars.get_makes(year)


@router.get("/{year}/{make}/models", response_model=list[str])
def get_models(year: str, make: str, cars: CarDataService = Depends(get_car_data_service)) -> list[str]:
    return cars.get_models(year, make)
