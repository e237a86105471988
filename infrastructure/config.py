from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Hotel Booking & Wallet API"
    currency: str = "VND"

    # Auth
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Logging
    log_level: str = "INFO"

    # Bookings
    booking_deposit_kind: str = "percentage"  # percentage | fixed
    booking_deposit_value: int = 30
    max_stay_nights: int = 30
    availability_policy: str = "best_effort"  # best_effort | serializable

    # Wallet
    min_deposit_amount: int = 10000
    min_withdrawal_amount: int = 10000
    min_admin_transaction_amount: int = 1000
    withdrawal_confirmation_ttl_minutes: int = 1440  # 24 hours

    # Unit of work
    transaction_retry_attempts: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
