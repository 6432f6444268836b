"""Build and run container tool invocations (podman or docker)."""

from __future__ import annotations

import logging
import os
import posixpath
import random
import string
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from typing import IO, Iterable

_NAME_CHARSET = string.ascii_lowercase + string.ascii_uppercase

PROXY_VARIABLES = (
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "NO_PROXY",
    "ALL_PROXY",
    "http_proxy",
    "https_proxy",
    "no_proxy",
    "all_proxy",
)


class ContainerError(RuntimeError):
    """Raised when a container command is misconfigured or fails."""


def random_name() -> str:
    """Return a random 16-letter container name."""
    return "".join(random.choice(_NAME_CHARSET) for _ in range(16))


def _pump(stream: IO[str], writers: Iterable[IO[str]], collected: list[str] | None) -> None:
    for line in stream:
        for writer in writers:
            writer.write(line)
        if collected is not None:
            collected.append(line)
    stream.close()


@dataclass
class Container:
    """A container run description that can be turned into a command line."""

    image: str = ""
    name: str = ""
    network_name: str = ""
    ipv4: str = ""
    entrypoint_bin: str = ""
    entrypoint_args: list[str] = field(default_factory=list)
    workdir: str = ""
    env: dict[str, str] = field(default_factory=dict)
    # remove the container once it exits
    cleanup: bool = True
    # source path -> destination path
    volumes: dict[str, str] = field(default_factory=dict)
    # "host:container" port mappings
    ports: list[str] = field(default_factory=list)
    c_flag: bool = False
    detached: bool = False
    container_tool_bin: str = "podman"
    stdout: list[IO[str]] = field(default_factory=lambda: [sys.stdout])
    stderr: list[IO[str]] = field(default_factory=lambda: [sys.stderr])
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def with_proxy(self, http_proxy: str, https_proxy: str, no_proxy: str) -> "Container":
        """Copy host proxy variables into the environment, then apply explicit values."""
        for variable in PROXY_VARIABLES:
            value = os.environ.get(variable, "")
            if value:
                self.env[variable] = value
        explicit = {
            "HTTP_PROXY": http_proxy,
            "HTTPS_PROXY": https_proxy,
            "NO_PROXY": no_proxy,
        }
        for variable, value in explicit.items():
            if value:
                self.env[variable] = value
        return self

    @property
    def _is_podman(self) -> bool:
        return os.path.basename(self.container_tool_bin) == "podman"

    def build_args(self) -> list[str]:
        """Return the arguments passed to the container tool for ``run``."""
        if not self.image or not self.container_tool_bin:
            raise ContainerError("image and containerToolBin must be set")
        args = ["run"]
        # user namespace flags are podman specific
        if self._is_podman:
            args.append("--userns=keep-id")
            if sys.platform.startswith("win") or not hasattr(os, "getuid"):
                args.append("--user=1000:0")
            else:
                args.append(f"--user={os.getuid()}:0")
        if self.detached:
            args.append("-d")
        if self.cleanup:
            args.append("--rm")
        args += ["--name", self.name or random_name()]
        if self.network_name:
            args += ["--network", self.network_name]
        if self.ipv4:
            args += ["--ip", self.ipv4]
        if self.entrypoint_bin:
            args += ["--entrypoint", self.entrypoint_bin]
        if self.workdir:
            args += ["--workdir", self.workdir]
        for source, dest in self.volumes.items():
            args += ["-v", f"{os.path.normpath(source)}:{posixpath.normpath(dest)}:z"]
        for mapping in self.ports:
            args += ["-p", mapping]
        for key, value in self.env.items():
            args += ["--env", f"{key}={value}"]
        args.append(self.image)
        if self.c_flag:
            args.append("-c")
        args += self.entrypoint_args
        return args

    @staticmethod
    def _reproducer_for(tool: str, args: list[str]) -> str:
        return f"{tool} {' '.join(args).replace(' --rm', '')}"

    def reproducer(self) -> str:
        """Return a shell command that reproduces the run without removal."""
        return self._reproducer_for(self.container_tool_bin, self.build_args())

    def run(self) -> None:
        """Run the container, streaming output to the configured writers."""
        args = self.build_args()
        self.last_reproducer = self._reproducer_for(self.container_tool_bin, args)
        self.logger.info(
            "executing command: container tool=%s cmd=%s args=%s",
            self.container_tool_bin,
            self.entrypoint_bin,
            " ".join(args),
        )
        try:
            process = subprocess.Popen(
                [self.container_tool_bin, *args],
                stdout=subprocess.PIPE if self.stdout else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError:
            self.logger.exception("container run error")
            raise
        errors: list[str] = []
        threads = [
            threading.Thread(target=_pump, args=(process.stderr, list(self.stderr), errors))
        ]
        if self.stdout:
            threads.append(
                threading.Thread(target=_pump, args=(process.stdout, list(self.stdout), None))
            )
        for thread in threads:
            thread.start()
        returncode = process.wait()
        for thread in threads:
            thread.join()
        if returncode != 0:
            self.logger.error("container run error: exit status %d", returncode)
            raise ContainerError("".join(errors))

    def rm(self) -> None:
        """Remove the named container."""
        self.logger.info(
            "removing container: container tool=%s name=%s", self.container_tool_bin, self.name
        )
        result = subprocess.run(
            [self.container_tool_bin, "rm", self.name],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise ContainerError(result.stderr)

    def run_command(self, *args: str) -> str:
        """Run the container tool with arbitrary arguments and return its output."""
        self.logger.info(
            "executing command: container tool=%s cmd=%s args=%s",
            self.container_tool_bin,
            self.entrypoint_bin,
            " ".join(args),
        )
        try:
            result = subprocess.run(
                [self.container_tool_bin, *args],
                capture_output=True,
                text=True,
            )
        except OSError:
            self.logger.exception("container run error during cleanup")
            raise
        if result.returncode != 0:
            self.logger.error("container run error during cleanup")
            raise ContainerError(result.stderr)
        return result.stdout