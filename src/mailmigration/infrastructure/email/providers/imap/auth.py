from __future__ import annotations
import imaplib
import re
import socket
import ssl
from typing import Optional

from loguru import logger

from mailmigration.application.ports.mail_source import ImapCredentials
from mailmigration.domain.errors import (
    AuthenticationFailed,
    ConnectError,
    ConnectionRefused,
    ConnectTimeout,
    HostUnreachable,
    InsecureCertificate,
    UnknownConnectError,
)

DEFAULT_TIMEOUT_SECONDS = 30.0

_AUTH_PATTERN = re.compile(r"AUTHENTICATIONFAILED|authentication|invalid credentials|login failed", re.I)
_DNS_PATTERN = re.compile(r"ENOTFOUND|getaddrinfo|name or service not known|nodename nor servname", re.I)
_REFUSED_PATTERN = re.compile(r"ECONNREFUSED|connection refused", re.I)
_TIMEOUT_PATTERN = re.compile(r"timed? ?out", re.I)
_CERT_PATTERN = re.compile(r"certificate verify failed|self[- ]signed|unable to get local issuer", re.I)


def classify_connect_error(exc: BaseException, during_login: bool = False) -> ConnectError:
    """Map a driver exception onto the closed ConnectError taxonomy."""
    if isinstance(exc, ConnectError):
        return exc

    detail = str(exc)

    if isinstance(exc, ssl.SSLCertVerificationError) or _CERT_PATTERN.search(detail):
        return InsecureCertificate(detail)
    if isinstance(exc, socket.gaierror) or _DNS_PATTERN.search(detail):
        return HostUnreachable(detail)
    if isinstance(exc, ConnectionRefusedError) or _REFUSED_PATTERN.search(detail):
        return ConnectionRefused(detail)
    if isinstance(exc, TimeoutError) or _TIMEOUT_PATTERN.search(detail):
        return ConnectTimeout(detail)
    if isinstance(exc, imaplib.IMAP4.error) and (during_login or _AUTH_PATTERN.search(detail)):
        return AuthenticationFailed(detail)
    if _AUTH_PATTERN.search(detail):
        return AuthenticationFailed(detail)
    return UnknownConnectError(detail)


def build_ssl_context(allow_insecure_tls: bool) -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    if allow_insecure_tls:
        # Only for diagnosing self-signed endpoints
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


class ImapAuthenticator:
    """
    Responsible ONLY for establishing an authenticated IMAP connection.
    No folder logic, no fetching, no parsing.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    def login(
        self,
        host: str,
        port: int,
        secure: bool,
        creds: ImapCredentials,
        allow_insecure_tls: bool = False,
    ) -> imaplib.IMAP4:
        """
        Returns an authenticated connection or raises a ConnectError subclass.

        ``secure`` selects implicit TLS (IMAPS). Otherwise the plain connection
        is upgraded with STARTTLS when the server offers it.
        """
        if not host or not port:
            raise UnknownConnectError("host and port are required")

        conn: Optional[imaplib.IMAP4] = None
        try:
            if secure:
                conn = imaplib.IMAP4_SSL(
                    host=host,
                    port=port,
                    ssl_context=build_ssl_context(allow_insecure_tls),
                    timeout=self.timeout,
                )
            else:
                conn = imaplib.IMAP4(host=host, port=port, timeout=self.timeout)
                if "STARTTLS" in conn.capabilities:
                    conn.starttls(ssl_context=build_ssl_context(False))
        except Exception as e:
            _abandon(conn)
            error = classify_connect_error(e)
            logger.error(f"IMAP connect to {host}:{port} failed ({error.code}): {e}")
            raise error from e

        try:
            conn.login(creds.username, creds.password)
        except Exception as e:
            _abandon(conn)
            error = classify_connect_error(e, during_login=True)
            logger.error(f"IMAP login to {host}:{port} failed ({error.code}): {e}")
            raise error from e

        logger.info(f"Authenticated to {host}:{port} ({'ssl' if secure else 'plain/starttls'})")
        return conn


def _abandon(conn: Optional[imaplib.IMAP4]) -> None:
    """Drop a half-open connection without raising."""
    if conn is None:
        return
    try:
        conn.shutdown()
    except Exception as e:
        logger.debug(f"Ignoring error while dropping connection: {e}")
