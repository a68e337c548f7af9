# client.py -- Implementation of the client side git protocols
# Copyright (C) 2026 The gitcore authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitcore is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Client side support for the smart HTTP git protocol.

Only what a plain clone needs is implemented: reference discovery for
``git-upload-pack`` and a single round of ``want`` lines followed by
``done``. No capabilities are requested, so the server answers with a
``NAK`` line followed by the raw pack.
"""

__all__ = [
    "DiscoveredRefs",
    "HttpGitClient",
    "default_urllib3_manager",
]

import os
from collections.abc import Iterable
from io import BytesIO
from typing import NamedTuple
from urllib.parse import urljoin, urlparse

import urllib3
import urllib3.exceptions

from . import __version__
from .errors import GitProtocolError, NotGitRepository
from .log_utils import getLogger
from .objects import valid_hexsha
from .protocol import Protocol, extract_capabilities, pkt_line

logger = getLogger(__name__)

UPLOAD_PACK_SERVICE = "git-upload-pack"

DEFAULT_USER_AGENT = "git/gitcore-" + ".".join(map(str, __version__))

# Placeholder ref name advertised by servers for empty repositories
CAPABILITIES_REF = b"capabilities^{}"


class DiscoveredRefs(NamedTuple):
    """Result of reference discovery.

    Attributes:
      refs: Advertised refs, name -> id, in advertisement order
      head: The first advertised id, or None for an empty repository
      capabilities: Capabilities announced by the server
    """

    refs: dict[str, str]
    head: str | None
    capabilities: list[str]


def check_for_proxy_bypass(base_url: str | None) -> bool:
    """Check if the no_proxy environment variable excludes base_url."""
    if not base_url:
        return False
    no_proxy_str = os.environ.get("no_proxy") or os.environ.get("NO_PROXY")
    if not no_proxy_str:
        return False
    hostname = urlparse(base_url).hostname
    if not hostname:
        return False
    for host in no_proxy_str.split(","):
        host = host.strip().lstrip(".")
        if not host:
            continue
        if host == "*" or hostname == host or hostname.endswith("." + host):
            return True
    return False


def default_urllib3_manager(
    base_url: str | None = None,
    timeout: float | None = None,
    pool_manager_cls: type | None = None,
    proxy_manager_cls: type | None = None,
) -> urllib3.PoolManager:
    """Return urllib3 connection pool manager.

    Honour proxy settings from the https_proxy, http_proxy and all_proxy
    environment variables.

    Args:
      base_url: Base URL for proxy bypass checks
      timeout: Timeout for HTTP requests in seconds
      pool_manager_cls: Pool manager class to use
      proxy_manager_cls: Proxy manager class to use
    Returns:
      Either proxy_manager_cls (defaults to `urllib3.ProxyManager`) instance
      for proxy configurations, pool_manager_cls (defaults to
      `urllib3.PoolManager`) instance otherwise
    """
    proxy_server = None
    for proxyname in ("https_proxy", "http_proxy", "all_proxy"):
        proxy_server = os.environ.get(proxyname)
        if proxy_server:
            break
    if proxy_server and check_for_proxy_bypass(base_url):
        proxy_server = None

    headers = {"User-agent": DEFAULT_USER_AGENT}
    kwargs: dict[str, object] = {"cert_reqs": "CERT_REQUIRED"}
    if timeout is not None:
        kwargs["timeout"] = timeout

    if proxy_server:
        if proxy_manager_cls is None:
            proxy_manager_cls = urllib3.ProxyManager
        proxy_server_url = urlparse(proxy_server)
        if proxy_server_url.username is not None:
            proxy_headers = urllib3.make_headers(
                proxy_basic_auth=f"{proxy_server_url.username}:{proxy_server_url.password or ''}"
            )
        else:
            proxy_headers = {}
        return proxy_manager_cls(
            proxy_server, proxy_headers=proxy_headers, headers=headers, **kwargs
        )
    if pool_manager_cls is None:
        pool_manager_cls = urllib3.PoolManager
    return pool_manager_cls(headers=headers, **kwargs)


def _normalize_url(url: str) -> str:
    url = url.rstrip("/")
    if not url.endswith(".git"):
        url += ".git"
    return url + "/"


class HttpGitClient:
    """Git client that uses urllib3 for smart HTTP(S) connections."""

    def __init__(
        self,
        base_url: str,
        pool_manager: urllib3.PoolManager | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize HttpGitClient.

        Args:
          base_url: Repository URL; ``.git`` is appended if missing
          pool_manager: Optional urllib3 PoolManager for HTTP(S) connections
          timeout: Timeout for HTTP requests in seconds
        """
        self._base_url = _normalize_url(base_url)
        self._timeout = timeout
        if pool_manager is None:
            self.pool_manager = default_urllib3_manager(
                base_url=self._base_url, timeout=timeout
            )
        else:
            self.pool_manager = pool_manager

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._base_url!r})"

    def get_url(self) -> str:
        """Return the normalized repository URL."""
        return self._base_url.rstrip("/")

    def _http_request(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        data: bytes | None = None,
    ) -> bytes:
        """Perform HTTP request.

        Args:
          url: Request URL.
          headers: Optional custom headers to override defaults.
          data: Request data; a POST is sent if given, a GET otherwise.
        Returns: The response body
        Raises:
          NotGitRepository: if the server answers 404
          GitProtocolError: for other failures
        """
        req_headers = dict(getattr(self.pool_manager, "headers", {}))
        if headers is not None:
            req_headers.update(headers)
        req_headers["Pragma"] = "no-cache"
        request_kwargs: dict[str, object] = {"headers": req_headers, "retries": False}
        if self._timeout is not None:
            request_kwargs["timeout"] = self._timeout
        method = "GET" if data is None else "POST"
        if data is not None:
            request_kwargs["body"] = data
        logger.debug("%s %s", method, url)
        try:
            resp = self.pool_manager.request(method, url, **request_kwargs)
        except urllib3.exceptions.HTTPError as e:
            raise GitProtocolError(str(e)) from e
        if resp.status == 404:
            raise NotGitRepository(f"{url} does not exist")
        if resp.status != 200:
            raise GitProtocolError(f"unexpected http resp {resp.status} for {url}")
        return resp.data

    def discover_refs(self) -> DiscoveredRefs:
        """Discover the refs advertised by the server.

        Raises:
          GitProtocolError: if the advertisement is malformed
        """
        url = urljoin(self._base_url, f"info/refs?service={UPLOAD_PACK_SERVICE}")
        body = self._http_request(url, headers={"Accept": "*/*"})
        proto = Protocol(BytesIO(body).read)
        pkts = list(proto.read_pkt_seq())
        if pkts != [f"# service={UPLOAD_PACK_SERVICE}\n".encode("ascii")]:
            raise GitProtocolError(f"unexpected first line {pkts!r} from smart server")
        refs: dict[str, str] = {}
        capabilities: list[bytes] = []
        for i, pkt in enumerate(proto.read_pkt_seq()):
            line = pkt.rstrip(b"\n")
            if i == 0:
                line, capabilities = extract_capabilities(line)
            sha, sep, name = line.partition(b" ")
            sha_text = sha.decode("ascii", "replace")
            if not sep or not valid_hexsha(sha_text):
                raise GitProtocolError(f"invalid ref advertisement {pkt!r}")
            if name == CAPABILITIES_REF:
                continue
            refs[name.decode("utf-8", "surrogateescape")] = sha_text
        head = next(iter(refs.values()), None)
        logger.debug("discovered %d refs, head %s", len(refs), head)
        return DiscoveredRefs(
            refs, head, [c.decode("ascii", "replace") for c in capabilities]
        )

    def fetch_pack(self, wants: Iterable[str]) -> bytes:
        """Ask the server for a pack containing wants and their history.

        Args:
          wants: ids to request
        Returns: The raw pack data
        Raises:
          GitProtocolError: if the server answer is not a NAK followed by a
            pack
        """
        wants = list(wants)
        if not wants:
            raise ValueError("nothing to fetch")
        chunks = []
        for want in wants:
            if not valid_hexsha(want):
                raise ValueError(f"Invalid hex sha {want!r}")
            chunks.append(pkt_line(f"want {want}\n".encode("ascii")))
        chunks.append(pkt_line(None))
        chunks.append(pkt_line(b"done\n"))
        url = urljoin(self._base_url, UPLOAD_PACK_SERVICE)
        headers = {
            "Content-Type": f"application/x-{UPLOAD_PACK_SERVICE}-request",
            "Accept": f"application/x-{UPLOAD_PACK_SERVICE}-result",
        }
        body = self._http_request(url, headers=headers, data=b"".join(chunks))
        if body.startswith(b"PACK"):
            return body
        stream = BytesIO(body)
        pkt = Protocol(stream.read).read_pkt_line()
        if pkt is not None and pkt.startswith(b"ERR "):
            raise GitProtocolError(pkt[4:].rstrip(b"\n").decode("utf-8", "replace"))
        if pkt is None or pkt.rstrip(b"\n") != b"NAK":
            raise GitProtocolError(f"expected NAK from server, got {pkt!r}")
        data = stream.read()
        logger.debug("received %d bytes of pack data", len(data))
        return data
