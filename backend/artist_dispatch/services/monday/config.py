"""Monday.com API config. Credentials from settings (MONDAY_API_TOKEN, MONDAY_CLIENTS_BOARD_ID) or MondayClient args."""
from artist_dispatch.config import settings

DEFAULT_API_URL = "https://api.monday.com/v2"
API_VERSION = "2024-10"


class MondayConfig:
    """API token, endpoint and the board that holds client bookings."""

    __slots__ = ("api_token", "api_url", "clients_board_id")

    def __init__(
        self,
        *,
        api_token: str | None = None,
        api_url: str | None = None,
        clients_board_id: str | None = None,
    ) -> None:
        self.api_token = (api_token if api_token is not None else settings.monday_api_token).strip()
        self.api_url = (api_url or settings.monday_api_url or DEFAULT_API_URL).rstrip("/")
        self.clients_board_id = (
            clients_board_id if clients_board_id is not None else settings.monday_clients_board_id
        ).strip()

    def is_configured(self) -> bool:
        return bool(self.api_token)

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": self.api_token,
            "API-Version": API_VERSION,
            "Content-Type": "application/json",
        }
