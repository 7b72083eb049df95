# Copyright 2020 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Minimize many svgs concurrently over a bounded set of render sessions."""

import asyncio
from collections import deque
import contextlib
import os
from typing import AsyncIterator, Deque, List, Optional
from svgunjunk.svg_compare import RenderSession
from svgunjunk.unjunk import Options, finalize, unjunk


class SessionPool:
    """Up to parallel RenderSessions, created on demand.

    acquire() waits while every session is in use; waiters are served in
    the order they arrived.
    """

    def __init__(self, parallel: Optional[int] = None):
        if parallel is not None and int(parallel) > 0:
            self.max_sessions = int(parallel)
        else:
            self.max_sessions = os.cpu_count() or 1
        self._free_sessions: List[RenderSession] = []
        self._all_sessions: List[RenderSession] = []
        self._waiters: Deque[asyncio.Future] = deque()
        self.closed = False

    @property
    def size(self) -> int:
        return len(self._all_sessions)

    async def acquire(self) -> RenderSession:
        if self.closed:
            raise ValueError("SessionPool is closed")
        if self._free_sessions:
            return self._free_sessions.pop()
        if len(self._all_sessions) < self.max_sessions:
            session = RenderSession()
            self._all_sessions.append(session)
            return session
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            # release() may have handed us a session before the cancellation
            if waiter.done() and not waiter.cancelled():
                self.release(waiter.result())
            raise

    def release(self, session: RenderSession):
        if self.closed:
            session.close()
            return
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(session)
                return
        self._free_sessions.append(session)

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncIterator[RenderSession]:
        session = await self.acquire()
        try:
            yield session
        finally:
            self.release(session)

    def close(self):
        if self.closed:
            return
        self.closed = True
        for session in self._all_sessions:
            session.close()
        for waiter in self._waiters:
            waiter.cancel()
        self._waiters.clear()
        self._free_sessions.clear()


class SvgUnjunk:
    """Unjunk runner.

    Create one and share it; every process() call holds a render session for
    its whole run so the session's rasterization cache stays warm. Call
    close() when done.
    """

    def __init__(self, parallel: Optional[int] = None):
        self._pool = SessionPool(parallel)

    async def process(
        self, svg_code: str, scale: float = Options.scale, lossless: bool = False
    ) -> str:
        """Unjunk a single svg.

        Raises:
            ParseError if svg_code isn't a single root svg document.
        """
        scale = float(scale)
        if not scale > 0:
            scale = Options.scale
        async with self._pool.session() as session:
            result = await unjunk(
                str(svg_code), session.comparators(scale), lossless=bool(lossless)
            )
        return finalize(str(svg_code), result.svg_code)

    def close(self):
        self._pool.close()
