"""Bridge configuration handling.

Named bridge configurations live in INI files, one section per bridge:

[loopback]
tx_addr = 127.0.0.1:8860
rx_addr = 127.0.0.1:8861
send_bind_addr = 0.0.0.0:9999
backend = statevector
n_qubits = 10
seed = 123
qubit_map = y
queue_len = 100

Files are read in order, later files overriding earlier ones:

1. the packaged `bridges.ini` next to this module,
2. the user file `~/.layosc/bridges.ini` (if present),
3. an explicit path passed by the caller.

Missing keys take the defaults from `layosc.util.defaults`. `seed = none`
disables seeding.
"""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from loguru import logger
from mashumaro import DataClassDictMixin

from layosc.backend import BACKENDS, get_qubit_map
from layosc.types import Layer, QubitMap
from layosc.util import (
    DEFAULT_HOST_ADDR,
    DEFAULT_N_QUBITS,
    DEFAULT_RX_PORT,
    DEFAULT_SEED,
    DEFAULT_SEND_BIND_ADDR,
    DEFAULT_TX_PORT,
    QUEUE_LEN,
)
from layosc.util.net import Addr, parse_addr

PACKAGED_CONFIG = Path(__file__).parent / "bridges.ini"


def user_config_path() -> Path:
    return Path.home() / ".layosc" / "bridges.ini"


@dataclass(kw_only=True)
class BridgeConfig(DataClassDictMixin):
    """Settings for one standalone bridge server.

    Attributes
    ----------
    name : str
        Name of the configuration (INI section).
    tx_addr : str
        host:port responses are sent to.
    rx_addr : str
        host:port requests are received on.
    send_bind_addr : str
        host:port the outbound socket binds to.
    backend : str
        Key into `layosc.backend.BACKENDS`.
    n_qubits : int
        Backend register size.
    seed : int or None
        Backend measurement seed.
    qubit_map : str
        Coordinate -> qubit/slot mapping, see `layosc.backend.get_qubit_map`.
    queue_len : int
        Capacity of each pipeline channel.
    """

    name: str = "default"
    tx_addr: str = f"{DEFAULT_HOST_ADDR}:{DEFAULT_TX_PORT}"
    rx_addr: str = f"{DEFAULT_HOST_ADDR}:{DEFAULT_RX_PORT}"
    send_bind_addr: str = DEFAULT_SEND_BIND_ADDR
    backend: str = "statevector"
    n_qubits: int = DEFAULT_N_QUBITS
    seed: Optional[int] = DEFAULT_SEED
    qubit_map: str = "y"
    queue_len: int = QUEUE_LEN

    def __post_init__(self):
        ok, msg = validate_bridge_config(self)
        if not ok:
            raise ValueError(f"Invalid bridge config '{self.name}': {msg}")

    @property
    def tx(self) -> Addr:
        return parse_addr(self.tx_addr)

    @property
    def rx(self) -> Addr:
        return parse_addr(self.rx_addr)

    @property
    def send_bind(self) -> Addr:
        return parse_addr(self.send_bind_addr)

    def make_backend(self) -> Layer:
        return BACKENDS[self.backend](self.n_qubits, seed=self.seed)

    def make_qubit_map(self) -> QubitMap:
        return get_qubit_map(self.qubit_map)


def validate_bridge_config(config: BridgeConfig) -> tuple[bool, str]:
    """Validate a bridge configuration.

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    for attr in ("tx_addr", "rx_addr", "send_bind_addr"):
        try:
            parse_addr(getattr(config, attr))
        except ValueError as e:
            return False, f"{attr}: {e}"
    if config.backend not in BACKENDS:
        return False, f"Invalid backend: {config.backend}"
    try:
        get_qubit_map(config.qubit_map)
    except ValueError as e:
        return False, str(e)
    if config.n_qubits <= 0:
        return False, "n_qubits must be positive"
    if config.queue_len <= 0:
        return False, "queue_len must be positive"
    return True, ""


def _read_parser(path: Optional[str | Path] = None) -> ConfigParser:
    parser = ConfigParser()
    paths = [PACKAGED_CONFIG, user_config_path()]
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Bridge config file not found: {path}")
        paths.append(path)
    read = parser.read(paths)
    logger.debug("Read bridge configs from {}", read)
    return parser


def _convert(key: str, raw: str):
    field_types = {f.name: f.type for f in fields(BridgeConfig)}
    if key not in field_types:
        raise ValueError(f"Unknown bridge config key: {key}")
    if key == "seed":
        return None if raw.strip().lower() in ("", "none") else int(raw)
    if key in ("n_qubits", "queue_len"):
        return int(raw)
    return raw.strip()


def load_bridge_config(name: str, path: Optional[str | Path] = None) -> BridgeConfig:
    """Load a named bridge configuration.

    Raises
    ------
    ValueError
        If the section does not exist or holds invalid values.
    """
    parser = _read_parser(path)
    if not parser.has_section(name):
        raise ValueError(f"Bridge config {name} not found.")
    values = {"name": name}
    for key, raw in parser[name].items():
        values[key] = _convert(key, raw)
    return BridgeConfig.from_dict(values)


def list_bridge_configs(path: Optional[str | Path] = None) -> list[str]:
    return _read_parser(path).sections()
