"""
Shared httpx client construction for the Gemini transport and the load runner.
"""

from dataclasses import dataclass, replace

from httpx import AsyncClient, Limits, Timeout

from config import config


@dataclass(frozen=True)
class TransportPolicy:
    """Snapshot of ``config.api``; per-call-site overrides go through ``replace``"""
    trust_env: bool
    connect_timeout: float
    read_timeout: float
    write_timeout: float
    pool_timeout: float
    max_connections: int
    max_keepalive_connections: int

    def timeout(self, total: float | None = None) -> Timeout:
        # One overall budget replaces the per-phase values.
        if total is not None:
            return Timeout(total)
        return Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout,
        )

    def limits(self) -> Limits:
        return Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
        )


def get_transport_policy(**overrides) -> TransportPolicy:
    api = config.api
    policy = TransportPolicy(
        trust_env=api.trust_env,
        connect_timeout=api.connect_timeout,
        read_timeout=api.read_timeout,
        write_timeout=api.write_timeout,
        pool_timeout=api.pool_timeout,
        max_connections=api.max_connections,
        max_keepalive_connections=api.max_keepalive_connections,
    )
    overrides = {name: value for name, value in overrides.items() if value is not None}
    return replace(policy, **overrides) if overrides else policy


def create_async_client(
    *,
    total_timeout: float | None = None,
    headers: dict | None = None,
    **overrides,
) -> AsyncClient:
    """
    AsyncClient built from the configured policy.

    Keyword overrides use ``TransportPolicy`` field names, e.g.
    ``max_connections=5`` or ``trust_env=True``; ``None`` keeps the policy value.
    """
    policy = get_transport_policy(**overrides)
    return AsyncClient(
        limits=policy.limits(),
        timeout=policy.timeout(total_timeout),
        headers=headers,
        trust_env=policy.trust_env,
    )
