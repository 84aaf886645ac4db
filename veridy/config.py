"""
Veridy Configuration.

Provides sensible defaults with override capability.
"""

from pydantic import BaseModel, Field, ConfigDict
from pathlib import Path
from typing import Any, Optional
import json
import os


class NetworkConfig(BaseModel):
    """
    One ledger deployment.

    Deployments differ only by chain id and contract addresses, so a network
    is plain data handed to the coordinator at construction time.
    """

    name: str
    chain_id: int
    marketplace_address: str
    token_address: str
    token_symbol: str = "USDT"
    token_decimals: int = 6
    rpc_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)


NETWORKS: dict[str, NetworkConfig] = {
    "arbitrum": NetworkConfig(
        name="arbitrum",
        chain_id=42161,
        marketplace_address="0xD3A17B869883EAec005620D84B38E68d3c6cF893",
        token_address="0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
    ),
    "sepolia": NetworkConfig(
        name="sepolia",
        chain_id=11155111,
        marketplace_address="0x57b721a1904fb5187b93857f7f38fba80b568f34",
        token_address="0x7169D38820dfd117C3FA1f22a697dBA58d90BA06",
    ),
}

DEFAULT_NETWORK = "arbitrum"

DEFAULT_IPFS_GATEWAYS = [
    "https://gateway.pinata.cloud",
    "https://cloudflare-ipfs.com",
    "https://ipfs.io",
    "https://dweb.link",
    "https://w3s.link",
]


def get_network(name: str) -> NetworkConfig:
    """Look up a network preset by name."""
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(f"Unknown network {name!r}; expected one of {sorted(NETWORKS)}")


class VeridyConfig(BaseModel):
    """
    Configuration for Veridy.

    All paths default to ~/.veridy/ directory.
    Environment variables override defaults (VERIDY_* prefix).
    """

    # Identity
    name: str = "veridy-wallet"

    # Storage paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".veridy")
    keys_file: str = "keys.json"

    # Ledger
    network: str = DEFAULT_NETWORK

    # Content store
    pinata_jwt: Optional[str] = None
    pinata_api_url: str = "https://api.pinata.cloud"
    ipfs_gateways: list[str] = Field(default_factory=lambda: list(DEFAULT_IPFS_GATEWAYS))
    request_timeout: float = 30.0
    max_attempts: int = 4

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def model_post_init(self, __context):
        """Apply environment variable overrides."""
        self._apply_env_overrides()
        self._ensure_directories()

    def _apply_env_overrides(self):
        """Override config from environment variables."""
        env_map = {
            "VERIDY_NAME": ("name", str),
            "VERIDY_DATA_DIR": ("data_dir", Path),
            "VERIDY_NETWORK": ("network", str),
            "VERIDY_PINATA_JWT": ("pinata_jwt", str),
            "VERIDY_LOG_LEVEL": ("log_level", str),
            "VERIDY_LOG_FILE": ("log_file", str),
            "VERIDY_PINATA_API_URL": ("pinata_api_url", str),
        }

        for env_var, (attr, type_fn) in env_map.items():
            value = os.environ.get(env_var)
            if value is not None:
                setattr(self, attr, type_fn(value))

        gateway = os.environ.get("VERIDY_PINATA_GATEWAY")
        if gateway and gateway not in self.ipfs_gateways:
            self.ipfs_gateways.insert(0, gateway)

    def _ensure_directories(self):
        """Create data directory if needed."""
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def keys_path(self) -> Path:
        """Full path to the local key file (ECDH pairs and content keys)."""
        filename = f"{self.name}.{self.keys_file}" if self.keys_file == "keys.json" else self.keys_file
        return self.data_dir / filename

    @property
    def network_config(self) -> NetworkConfig:
        return get_network(self.network)

    @property
    def log_path(self) -> Optional[Path]:
        """Log file location; relative names resolve under data_dir."""
        if not self.log_file:
            return None
        path = Path(self.log_file)
        return path if path.is_absolute() else self.data_dir / path

    def content_store(self, http=None):
        """Build the Pinata/IPFS content store from this config.

        Args:
            http: Optional httpx.AsyncClient to inject
        """
        from .adapters.ipfs import PinataContentStore

        return PinataContentStore(
            self.pinata_jwt or "",
            self.ipfs_gateways,
            api_url=self.pinata_api_url,
            http=http,
            timeout=self.request_timeout,
            max_attempts=self.max_attempts,
        )

    def to_dict(self) -> dict[str, Any]:
        """Export config to dictionary. The Pinata JWT is never exported."""
        return {
            "name": self.name,
            "data_dir": str(self.data_dir),
            "network": self.network,
            "ipfs_gateways": list(self.ipfs_gateways),
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

    def save(self, path: Optional[Path] = None):
        """Save config to file."""
        path = path or (self.data_dir / "config.json")
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "VeridyConfig":
        """Load config from file."""
        with open(path) as f:
            data = json.load(f)

        return cls(
            name=data.get("name", "veridy-wallet"),
            data_dir=Path(data.get("data_dir", Path.home() / ".veridy")),
            network=data.get("network", DEFAULT_NETWORK),
            ipfs_gateways=data.get("ipfs_gateways", list(DEFAULT_IPFS_GATEWAYS)),
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )

    @classmethod
    def development(cls) -> "VeridyConfig":
        """Create development config against the test network."""
        return cls(
            name="dev-wallet",
            data_dir=Path.home() / ".veridy-dev",
            network="sepolia",
            log_level="DEBUG",
        )

    @classmethod
    def production(cls) -> "VeridyConfig":
        """Create production config."""
        return cls(
            name="veridy-wallet",
            network="arbitrum",
            log_level="WARNING",
        )
