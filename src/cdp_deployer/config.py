# config.py
# Deployment configuration: YAML file for parameters, .env for secrets.
#
# Defaults reproduce the values of the reference testnet deployment, so an
# empty YAML file plus CDP_RPC_URL / CDP_PRIVATE_KEY is a complete config.

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from cdp_deployer.errors import ConfigError

WAD = 10**18


class OracleSettings(BaseModel):
    """Arguments of PriceFeed.setOracle for the collateral asset."""

    heartbeat: int = Field(
        default=80000, ge=0, description="Seconds before a price is considered stale."
    )
    share_price_signature: str = Field(
        default="0x00000000",
        description="bytes4 selector converting a derivative to its base asset. Zero = 1:1.",
    )
    share_price_decimals: int = Field(default=18, ge=0, le=255)
    is_eth_indexed: bool = False

    @field_validator("share_price_signature")
    @classmethod
    def _check_selector(cls, value: str) -> str:
        body = value[2:] if value.startswith("0x") else ""
        if len(body) != 8 or any(c not in "0123456789abcdefABCDEF" for c in body):
            raise ValueError(f"share_price_signature must be 0x + 8 hex digits, got {value!r}")
        return value


class RiskParameters(BaseModel):
    """Per-collateral parameter struct passed to Factory.deployNewInstance."""

    model_config = ConfigDict(populate_by_name=True)

    minute_decay_factor: int = Field(default=999037758833783000, alias="minuteDecayFactor")
    redemption_fee_floor: int = Field(default=5 * 10**15, alias="redemptionFeeFloor")
    max_redemption_fee: int = Field(default=WAD, alias="maxRedemptionFee")
    borrowing_fee_floor: int = Field(default=0, alias="borrowingFeeFloor")
    max_borrowing_fee: int = Field(default=0, alias="maxBorrowingFee")
    interest_rate_in_bps: int = Field(default=0, alias="interestRateInBps")
    max_debt: int = Field(default=1_000_000 * WAD, alias="maxDebt")
    mcr: int = Field(default=2 * WAD, alias="MCR", description="Minimum collateral ratio, 2e18 = 200%.")

    def as_struct(self) -> dict[str, int]:
        """Field-ordered dict keyed by the on-chain struct member names."""
        return self.model_dump(by_alias=True)


class DeploymentConfig(BaseModel):
    network: str = "lorenzo_testnet"
    rpc_url: str | None = None
    private_key: SecretStr | None = None
    artifacts_dir: Path = Path("artifacts")
    confirmation_timeout: float = Field(default=120.0, gt=0)

    # Existing collateral / aggregator. When absent, mocks are deployed.
    collateral: str | None = None
    aggregator: str | None = None

    # Role overrides. None means "the deploying principal".
    owner: str | None = None
    guardian: str | None = None
    fee_receiver: str | None = None
    locker_manager: str | None = None

    debt_token_name: str = "USDB"
    debt_token_symbol: str = "USDB"
    gas_compensation: int = 200 * WAD
    min_net_debt: int = 1800 * WAD
    lock_to_token_ratio: int = WAD
    # Cross-chain endpoint for the debt and governance tokens. Not available
    # yet; the zero address is passed until it is.
    layer_zero_endpoint: str | None = None
    receiver_type_id: int = 2

    oracle: OracleSettings = Field(default_factory=OracleSettings)
    risk: RiskParameters = Field(default_factory=RiskParameters)

    @field_validator(
        "collateral",
        "aggregator",
        "owner",
        "guardian",
        "fee_receiver",
        "locker_manager",
        "layer_zero_endpoint",
    )
    @classmethod
    def _check_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not is_address(value):
            raise ValueError(f"not a 20-byte hex address: {value!r}")
        return to_checksum_address(value)

    @classmethod
    def load(cls, path: str | Path | None = None, env_file: str | Path | None = None) -> "DeploymentConfig":
        """
        Load YAML parameters and inject secrets from the environment.

        - `path` is optional; without it only defaults and env are used.
        - `.env` is read first (from `env_file` or the working directory).
        - CDP_RPC_URL / CDP_PRIVATE_KEY override values from the file.
        """
        load_dotenv(env_file)

        raw: dict = {}
        if path is not None:
            path = Path(path)
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            if not isinstance(raw, dict):
                raise ConfigError(f"Config file {path} must contain a mapping.")

        if os.getenv("CDP_RPC_URL"):
            raw["rpc_url"] = os.getenv("CDP_RPC_URL")
        if os.getenv("CDP_PRIVATE_KEY"):
            raw["private_key"] = os.getenv("CDP_PRIVATE_KEY")

        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid deployment config: {exc}") from exc
