"""Storage pairing selection and credential loading.

A pairing names a (source, target) pair of storage accounts. Credentials for
each side are read from environment variables derived from the pairing name:

    HILCO_AZURE_<SIDE>_<PAIRING>_ACCOUNT
    HILCO_AZURE_<SIDE>_<PAIRING>_KEY
    HILCO_AZURE_<SIDE>_<PAIRING>_CONNECTION_STRING   (optional, wins if set)
"""
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .errors import MissingCredentialsError, UnknownPairingError

ENV_PREFIX = "HILCO_AZURE"

# Pairing identifier -> environment variable infix
PAIRINGS = {
    "storage": "STORAGE",
    "cdn": "CDN",
}

SOURCE = "source"
TARGET = "target"


@dataclass(frozen=True)
class StoreCredentials:
    """Credentials for one side of a pairing."""
    side: str
    account_name: Optional[str] = None
    account_key: Optional[str] = None
    connection_string: Optional[str] = None


@dataclass(frozen=True)
class StorePairing:
    """Resolved (source, target) credentials for a pairing."""
    name: str
    source: StoreCredentials
    target: StoreCredentials


def env_var_names(pairing: str, side: str) -> Dict[str, str]:
    """Environment variable names for one side of a pairing.

    Args:
        pairing: Pairing identifier ("storage" or "cdn")
        side: "source" or "target"

    Returns:
        Mapping of credential field to variable name

    Raises:
        UnknownPairingError: If the pairing is not known
    """
    if pairing not in PAIRINGS:
        raise UnknownPairingError(pairing, PAIRINGS)
    base = f"{ENV_PREFIX}_{side.upper()}_{PAIRINGS[pairing]}"
    return {
        "account_name": f"{base}_ACCOUNT",
        "account_key": f"{base}_KEY",
        "connection_string": f"{base}_CONNECTION_STRING",
    }


def resolve_pairing(
    pairing: str,
    provider: str = "azure",
    environ: Optional[Mapping[str, str]] = None,
) -> StorePairing:
    """Resolve a pairing identifier to credentials for both sides.

    This runs before any store is built, so a bad pairing or missing
    credentials abort the run before the pipeline starts.

    Args:
        pairing: Pairing identifier from the command line
        provider: "azure" requires a connection string or account + key;
            "fs" only needs the account variable, read as a directory
        environ: Environment to read (defaults to os.environ)

    Returns:
        StorePairing for the pairing

    Raises:
        UnknownPairingError: If the pairing is not known
        MissingCredentialsError: If a side has no usable credentials
    """
    env = os.environ if environ is None else environ
    return StorePairing(
        name=pairing,
        source=_load_side(pairing, SOURCE, provider, env),
        target=_load_side(pairing, TARGET, provider, env),
    )


def _load_side(pairing: str, side: str, provider: str, env: Mapping[str, str]) -> StoreCredentials:
    names = env_var_names(pairing, side)
    values = {field: (env.get(var) or None) for field, var in names.items()}
    creds = StoreCredentials(side=side, **values)

    missing: List[str] = []
    if provider == "fs":
        if not creds.account_name:
            missing = [names["account_name"]]
    elif not creds.connection_string and not (creds.account_name and creds.account_key):
        missing = [
            names[field]
            for field in ("account_name", "account_key")
            if not values[field]
        ]

    if missing:
        raise MissingCredentialsError(side, missing)
    return creds
