from .refiner_result import RefinerResult, generate_refiner_id


__all__ = [
    "RefinerResult",
    "generate_refiner_id",
]
