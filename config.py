from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_PATH: str = "database/grocery_delivery.db"

    # "permissive" lets any status follow any other, "strict" enforces VALID_TRANSITIONS
    TRANSITION_POLICY: str = "permissive"

    GEOFENCE_AVAILABLE_ORDERS: bool = False
    AVAILABLE_ORDERS_LIMIT: int = 10

    SEED_DEMO_DATA: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
