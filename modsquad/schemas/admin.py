from modsquad.schemas.common import CamelModel


class StatsRead(CamelModel):
    total_vehicles: int
    regular_users: int


class SweepResponse(CamelModel):
    deleted: int | None = None
    task_id: str | None = None
