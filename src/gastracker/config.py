"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHAIN_COLOR = "#666666"


class NetworkConfig(BaseModel):
    """Static description of one tracked network. Never mutated after load."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    currency: str
    rpc_url: str
    ws_url: str = ""  # empty disables the push subscription
    color: str = DEFAULT_CHAIN_COLOR
    icon: str = ""


DEFAULT_NETWORKS: tuple[NetworkConfig, ...] = (
    NetworkConfig(
        id="ethereum",
        name="Ethereum",
        currency="ETH",
        rpc_url="https://eth-mainnet.g.alchemy.com/v2/demo",
        ws_url="wss://eth-mainnet.g.alchemy.com/v2/demo",
        color="#627EEA",
        icon="⟠",
    ),
    NetworkConfig(
        id="polygon",
        name="Polygon",
        currency="MATIC",
        rpc_url="https://polygon-rpc.com",
        ws_url="wss://polygon-rpc.com",
        color="#8247E5",
        icon="◢",
    ),
    NetworkConfig(
        id="arbitrum",
        name="Arbitrum",
        currency="ETH",
        rpc_url="https://arb1.arbitrum.io/rpc",
        ws_url="wss://arb1.arbitrum.io/ws",
        color="#28A0F0",
        icon="◉",
    ),
)


class MonitorSettings(BaseSettings):
    """Per-network gas monitoring parameters."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_")

    poll_interval: float = 6.0  # seconds between polling ticks
    history_capacity: int = Field(default=100, ge=1)
    candle_interval_minutes: int = Field(default=15, ge=1)
    fallback_priority_fee_wei: int = Field(default=2_000_000_000, ge=0)  # 2 gwei
    request_timeout: float = 10.0  # HTTP transport timeout, seconds
    subscribe_timeout: float = 10.0  # websocket handshake timeout, seconds

    @property
    def candle_interval_ms(self) -> int:
        return self.candle_interval_minutes * 60 * 1000


class OracleSettings(BaseSettings):
    """Liquidity-pool price oracle configuration.

    The default pool is the Uniswap V3 WETH/USDT 0.3% pool on Ethereum
    (token0 = WETH, 18 decimals; token1 = USDT, 6 decimals). The raw pool
    price is token1 units per token0 unit, so for a USD-per-ETH reading
    ``decimals_asset1`` takes token0's decimals and ``decimals_asset0``
    takes token1's. Other pools must follow the same mapping.
    """

    model_config = SettingsConfigDict(env_prefix="ORACLE_")

    rpc_url: str = "https://eth-mainnet.g.alchemy.com/v2/demo"
    ws_url: str = "wss://eth-mainnet.g.alchemy.com/v2/demo"
    pool_address: str = "0x4e68Ccd3E89f51C3074ca5072bbAC773960dFa36"
    decimals_asset0: int = 6  # pool token1 (USDT) decimals, divided out last
    decimals_asset1: int = 18  # pool token0 (WETH) decimals, multiplied in first
    poll_interval: float = 30.0
    fallback_price: Decimal = Decimal("2000")
    subscribe: bool = True


class SimulationSettings(BaseSettings):
    """Transaction cost simulation defaults."""

    model_config = SettingsConfigDict(env_prefix="SIMULATION_")

    default_gas_limit: int = Field(default=21000, ge=1)
    default_amount: str = "0.1"
    default_network: str = "ethereum"


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    networks: list[NetworkConfig] = Field(default_factory=lambda: list(DEFAULT_NETWORKS))
    monitor: MonitorSettings = MonitorSettings()
    oracle: OracleSettings = OracleSettings()
    simulation: SimulationSettings = SimulationSettings()
    dashboard: DashboardSettings = DashboardSettings()

    def get_network(self, network_id: str) -> NetworkConfig | None:
        for network in self.networks:
            if network.id == network_id:
                return network
        return None

    def chain_color(self, network_id: str) -> str:
        """Display color for a network; unknown networks get the neutral default."""
        network = self.get_network(network_id)
        return network.color if network is not None else DEFAULT_CHAIN_COLOR
