"""
HTTP pipelining support for handling multiple requests in a single read.

This module drains every complete request out of a connection's receive
buffer, in arrival order, before the connection reads from the socket again.
"""

"""
Copyright 2025 Chris Bunting
File: pipelining.py | Purpose: HTTP pipelining implementation
@author Chris Bunting | @version 2.0.0

CHANGELOG:
2025-09-02 - Chris Bunting: Drive pipelining from the stateless framer and the per-connection buffer
2025-07-11 - Chris Bunting: Fixed request body handling and added request limit
2025-07-10 - Chris Bunting: Initial implementation
"""

from dataclasses import dataclass, field
from typing import List, Union

from ..core.buffer import ReceiveBuffer
from ..core.http_parser import INCOMPLETE, Incomplete, Malformed, Parsed, Request, attempt_parse


@dataclass
class PipelineResult:
    """Requests framed from one buffer plus the outcome that stopped the drain.

    ``outcome`` is either :class:`Incomplete` (wait for more bytes) or
    :class:`Malformed` (answer 400 and close after ``requests``).
    """
    requests: List[Request] = field(default_factory=list)
    outcome: Union[Incomplete, Malformed] = INCOMPLETE

    @property
    def malformed(self) -> bool:
        return isinstance(self.outcome, Malformed)


def drain_pipeline(buffer: ReceiveBuffer) -> PipelineResult:
    """Frame as many requests as ``buffer`` holds.

    The buffer is replaced by each request's remainder as it is framed, so on
    return it holds only the bytes that did not form a complete request.
    """
    result = PipelineResult()
    while buffer:
        with buffer.view() as view:
            outcome = attempt_parse(view)
        if not isinstance(outcome, Parsed):
            result.outcome = outcome
            break
        result.requests.append(outcome.request)
        buffer.replace(outcome.remainder)
    return result
