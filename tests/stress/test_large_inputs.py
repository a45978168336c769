# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import gc

import pytest

try:
    import tracemalloc
except ImportError:
    tracemalloc = None

from dockast.PARSERS.dockerfile_parser import DockerfileParser


def test_deep_continuation_chain():
    content = "RUN set -e && \\\n" + "    # step\n    true && \\\n" * 50000 + "    true\n"
    document = DockerfileParser().parse_from_string(content)
    form = document[0].form
    assert len(form.comments) == 50000
    assert form.text.startswith("set -e &&     true &&")


def test_huge_heredoc():
    body = "echo line\n" * 100000
    document = DockerfileParser().parse_from_string("RUN <<EOF\n" + body + "EOF\n")
    assert document[0].form.body == body


def test_many_instructions():
    content = "FROM alpine\n" + "ENV A=1 B=2\n" * 20000
    assert len(DockerfileParser().parse_from_string(content)) == 20001


def test_long_exec_array():
    content = "CMD [" + ", \\\n  ".join('"arg%d"' % i for i in range(20000)) + "]"
    arguments = DockerfileParser().parse_from_string(content)[0].form.arguments
    assert arguments[-1] == "arg19999"


@pytest.mark.skipif(tracemalloc is None, reason="tracemalloc not available")
def test_parser_memory_leak():
    """
    Checks that repeated parses do not accumulate memory.
    """
    content = "FROM alpine\nRUN <<EOF\necho hi\nEOF\nLABEL a=1 b=2\nCMD [\"sh\"]\n"
    parser = DockerfileParser()
    parser.parse_from_string(content)

    tracemalloc.start()
    gc.collect()
    snapshot1 = tracemalloc.take_snapshot()

    for _ in range(500):
        document = parser.parse_from_string(content)
        del document

    gc.collect()
    snapshot2 = tracemalloc.take_snapshot()
    top_stats = snapshot2.compare_to(snapshot1, "lineno")
    total_diff = sum(stat.size_diff for stat in top_stats)

    # 1 MB is a very generous threshold for 500 small parses
    assert total_diff < 1024 * 1024

    tracemalloc.stop()
