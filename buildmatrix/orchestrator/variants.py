from typing import List

from buildmatrix.common.config.constants import DISABLE_PROCESS_SHARED_CFLAG
from buildmatrix.common.dto.configuration import Configuration
from buildmatrix.orchestrator.registry import ConfigurationRegistry


_NO_PROCESS_SHARED = {"CFLAGS": f"${{CFLAGS}} {DISABLE_PROCESS_SHARED_CFLAG}"}

_NO_EPOLL = {
    "ac_cv_func_epoll_create1": "no",
    "ac_cv_func_epoll_create": "no",
}

_NO_GETTIME = {"ac_cv_func_clock_gettime": "no"}

_BSD_LIKE = {
    **_NO_EPOLL,
    "ac_cv_func_timerfd_create": "no",
    "ac_cv_header_sys_epoll_h": "no",
}


def default_configurations() -> List[Configuration]:
    # Order is the order of the "all" run.
    return [
        Configuration(
            name="ansi",
            configure_flags=("--enable-ansi",),
            description="strict ANSI C build",
        ),
        Configuration(
            name="nosection",
            configure_flags=("--enable-nosection-fallback",),
            environment_overrides={"ac_cv_link_attribute_section": "no"},
            description="no linker section support for logging callsites",
        ),
        Configuration(
            name="sysv",
            environment_overrides=dict(_NO_PROCESS_SHARED),
            description="SysV semaphores instead of process-shared POSIX primitives",
        ),
        Configuration(
            name="noepoll",
            environment_overrides=dict(_NO_EPOLL),
            description="poll() instead of epoll",
        ),
        Configuration(
            name="nogettime",
            environment_overrides=dict(_NO_GETTIME),
            description="no monotonic clock_gettime()",
        ),
        Configuration(
            name="bsd",
            environment_overrides=dict(_BSD_LIKE),
            description="BSD-like platform: no epoll, no timerfd",
        ),
        Configuration(
            name="dist",
            build_targets=("distcheck",),
            description="release tarball builds and passes its own checks",
        ),
        Configuration(
            name="rpm",
            build_targets=("rpm",),
            required_tools=("rpmbuild",),
            skip_on_missing_tool=True,
            description="binary RPM packages build",
        ),
        Configuration(
            name="mac",
            environment_overrides={**_BSD_LIKE, **_NO_GETTIME, **_NO_PROCESS_SHARED},
            include_in_all=False,
            description="Mac-like platform: BSD-like, no clock_gettime, no process-shared primitives",
        ),
    ]


def create_default_registry() -> ConfigurationRegistry:
    return ConfigurationRegistry(default_configurations())
