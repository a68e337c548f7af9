# clone.py
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

"""Repository clone handling."""

__all__ = ["do_clone"]

import os
import shutil
from typing import IO, TYPE_CHECKING

from .errors import GitProtocolError
from .log_utils import getLogger
from .refs import HEADREF

if TYPE_CHECKING:
    from .client import HttpGitClient
    from .repo import Repo

logger = getLogger(__name__)


def do_clone(
    url: str,
    target_path: str | os.PathLike[str],
    client: "HttpGitClient | None" = None,
    checkout: bool = True,
    errstream: IO[bytes] | None = None,
) -> "Repo":
    """Clone a repository over smart HTTP.

    The first advertised ref is fetched, its objects are stored as loose
    objects, the current branch is pointed at it and its tree is checked
    out into target_path.

    Args:
      url: Source repository URL
      target_path: Target directory; must not exist yet
      client: Client to use; an HttpGitClient for url by default
      checkout: Whether or not to check-out HEAD after cloning
      errstream: Optional stream for progress messages
    Returns: Created repository as `Repo`
    Raises:
      FileExistsError: if target_path exists. Any other failure removes
        target_path before the exception propagates.
    """
    from .client import HttpGitClient
    from .repo import Repo

    if client is None:
        client = HttpGitClient(url)

    target_path = os.fspath(target_path)
    os.mkdir(target_path)

    try:
        if errstream:
            errstream.write(f"Cloning into '{target_path}'...\n".encode())
        target = Repo.init(target_path)
        discovered = client.discover_refs()
        if discovered.head is None:
            raise GitProtocolError(f"{url} does not advertise any refs")
        logger.debug("fetching %s from %s", discovered.head, url)
        data = client.fetch_pack([discovered.head])
        pack = target.fetch_pack_data(data)
        logger.debug("stored %d objects", len(pack.entries))
        target.refs.set_ref(HEADREF, discovered.head)
        if checkout:
            if errstream:
                errstream.write(f"Checking out {discovered.head}\n".encode())
            target.checkout_commit(discovered.head, target_path)
    except BaseException:
        shutil.rmtree(target_path)
        raise

    return target
