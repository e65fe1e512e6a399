from pydantic import BaseModel, field_validator
from typing import Optional, List
from .config import DEFAULT_PORT, DEFAULT_TIMEOUT_MS, DEFAULT_INTERVAL_MS
from .validation import validate_host, validate_port, validate_positive_ms, validate_ping_id


class HostTarget(BaseModel):
    host: str
    port: int = DEFAULT_PORT

    @field_validator('host')
    @classmethod
    def check_host(cls, v: str) -> str:
        if not validate_host(v):
            raise ValueError('Invalid host')
        return v

    @field_validator('port')
    @classmethod
    def check_port(cls, v: int) -> int:
        if not validate_port(v):
            raise ValueError('Port must be between 1 and 65535')
        return v


class ProbeOptions(BaseModel):
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    use_icmp: bool = True
    use_tcp: bool = True

    @field_validator('timeout_ms')
    @classmethod
    def check_timeout(cls, v: int) -> int:
        if not validate_positive_ms(v):
            raise ValueError('timeout_ms must be positive')
        return v


class PingRequest(HostTarget, ProbeOptions):
    pass


class BatchPingRequest(ProbeOptions):
    hosts: List[HostTarget]


class ContinuousPingRequest(HostTarget):
    ping_id: str
    interval_ms: int = DEFAULT_INTERVAL_MS

    @field_validator('ping_id')
    @classmethod
    def check_ping_id(cls, v: str) -> str:
        if not validate_ping_id(v):
            raise ValueError('ping_id must be a non-empty string')
        return v

    @field_validator('interval_ms')
    @classmethod
    def check_interval(cls, v: int) -> int:
        if not validate_positive_ms(v):
            raise ValueError('interval_ms must be positive')
        return v


class PingResultOut(BaseModel):
    success: bool
    latency: int
    method: str
    error: Optional[str] = None
    timestamp: int


class ContinuousSessionOut(BaseModel):
    ping_id: str
    host: str
    port: int
    interval_ms: int
    started_at: float
