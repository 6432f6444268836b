# kantra

Helpers for running application analysis in containers and for reading
analysis profiles. The package has two modules: `kantra.container` and
`kantra.profile`.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Containers

`kantra.container.Container` is a dataclass that describes a container run
and turns it into a `podman` or `docker` command line. Its fields include
`image`, `name`, `network_name`, `ipv4`, `entrypoint_bin`,
`entrypoint_args`, `workdir`, `env`, `volumes`, `ports`, `cleanup`
(default `True`, adds `--rm`), `detached`, `c_flag` and
`container_tool_bin` (default `"podman"`).

When the base name of `container_tool_bin` is `podman`, the
user-namespace flags `--userns=keep-id` and `--user=<uid>:0` are added
(`--user=1000:0` on Windows). For any other tool, such as Docker, they
are left out. If no `name` is set, a random 16-letter name from
`random_name()` is used. Volumes are written as `source:dest:z` with both
paths normalised.

```python
from kantra.container import Container, ContainerError, random_name

container = Container(
    image="quay.io/example/analyzer:latest",
    name=random_name(),
    volumes={"/home/me/app": "/opt/input/source"},
)
container.with_proxy("http://proxy.example.com:8080", "", "localhost")

print(container.build_args())   # the argument list after the tool name
print(container.reproducer())   # the same command line without --rm

try:
    container.run()
except ContainerError as exc:
    print("container failed:", exc)
```

- `with_proxy(http_proxy, https_proxy, no_proxy)` copies any non-empty
  `HTTP_PROXY`, `HTTPS_PROXY`, `NO_PROXY`, `ALL_PROXY` variables (upper
  and lower case) from the host environment into `env`, then sets the
  non-empty explicit values, which take precedence. It returns the
  container.
- `build_args()` raises `ContainerError` when `image` or
  `container_tool_bin` is empty.
- `run()` starts the tool, streams its standard output and error to the
  writers in `stdout` and `stderr`, and raises `ContainerError` holding the
  error output when the tool exits with a non-zero status. If the tool
  cannot be started, the `OSError` is raised. The reproducer command of the
  last run is kept in `last_reproducer`.
- `run_command(*args)` runs the tool with arbitrary arguments (for example
  `container.run_command("network", "rm", "analysis")`) and returns its
  standard output; a non-zero exit raises `ContainerError`.
- `rm()` runs `<tool> rm <name>` and raises `ContainerError` on failure.

## Analysis profiles

Profiles live under `.konveyor/profiles/<name>/profile.yaml` in an
application directory and may hold a `rules/` directory next to them.
`kantra.profile` reads them into dataclasses (`AnalysisProfile`,
`AnalysisMode`, `AnalysisScope`, `PackageSelector`, `AnalysisRules`,
`LabelSelector`) and applies them to a `ProfileSettings`.

```python
from kantra.profile import (
    Flag,
    ProfileSettings,
    find_single_profile,
    set_settings_from_profile,
    unmarshal_profile,
)

path = find_single_profile("/home/me/app/.konveyor/profiles")
if path:
    profile = unmarshal_profile(path)
    settings = ProfileSettings(enable_default_rulesets=True)
    flags = {"mode": Flag(value="source-only", changed=True)}
    set_settings_from_profile(path, flags, settings)
    print(settings.input, settings.mode, settings.label_selector)
```

- `unmarshal_profile(path)` returns `None` for an empty path, raises
  `ProfileError` for invalid YAML, and lets file errors such as
  `FileNotFoundError` through.
- `set_settings_from_profile(path, flags, settings)` takes a mapping of
  flag names to `Flag(value, changed)`. Settings whose flag was changed are
  kept; the rest are filled in from the profile: `input` (the directory
  above `.konveyor`), `mode` (`full` or `source-only`),
  `analyze_known_libraries`, `incident_selector`, `label_selector`, and
  rule directories appended to `rules`. `enable_default_rulesets` takes the
  changed `enable-default-rulesets` flag value (which must be a bool), or
  otherwise becomes true when `target` or `source` was changed or the
  profile includes a `konveyor.io/target` or `konveyor.io/source` label. A
  path without `.konveyor` raises `ProfileError`.
- `build_incident_selector(packages)` gives e.g.
  `(package=a || package=b) && !package=c`.
- `build_label_selector(labels)` gives e.g. `(x || y) && !z`.
- `profile_has_rules(rules_dir)` tells whether any `.yaml` or `.yml` file
  exists under a directory.
- `get_rules_in_profile(profile_dir)` returns the sub-directories of
  `<profile_dir>/rules`, sorted, provided that YAML files exist there;
  it raises `ProfileError` when `rules` is not a directory.
- `find_single_profile(profiles_dir)` returns the `profile.yaml` path when
  exactly one profile directory exists, otherwise `None`.
- `profile_has_default_konveyor_labels(profile)` checks the included labels
  for the konveyor source or target label.

`Application`, `Repository` and `Resource` are plain dataclasses describing
applications in the Hub.

## What this package does not do

It has no command-line program, does not run the analysis itself, and
does not run YAML rule tests. It builds and runs container tool commands
and reads analysis profiles; the container images and the analysis they
perform are outside it.