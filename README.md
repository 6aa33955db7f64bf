# khutulun

Building blocks for a small cluster orchestrator that keeps its state in a directory
tree and runs services as systemd user units, either as plain processes or as podman
containers.

## Installation

```
pip install khutulun
```

Python 3.10 or later is needed. The dependencies are PyYAML, portalocker and watchdog.
Enabling units runs `/usr/bin/systemctl`, `/usr/bin/loginctl` and `/usr/bin/podman`,
so those functions only work on a Linux host that has them.

## Modules

### `khutulun.state`

`State(root_dir, lock_wait=1.0, lock_attempts=5)` gives access to a tree laid out as
`<root>/<namespace>/<type>/<name>/`. An empty namespace is stored as `_`.

- `namespace_dir`, `package_type_dir`, `package_dir` build paths.
- `list_namespaces()` returns the sorted names of non-hidden directories under the
  root (an empty list if the root does not exist); `list_namespaces_for(namespace)`
  returns all of them for an empty namespace, otherwise just that one.
- `list_packages(namespace, type_)` returns sorted `PackageIdentifier` values
  (`namespace`, `type`, `name`).
- `package_main_file(namespace, type_, name)`: `clout.yaml` for `service`,
  `profile.yaml` for `profile`, `host.yaml` for `host`, the first `.yaml` file for
  `template`, the first executable file for `delegate` (or `None`), and
  `<dir>/<name>` for other types.
- `lock_package(namespace, type_, name, create)` takes a shared lock on the package's
  `.lock` file, creating it when `create` is true. It retries every `lock_wait`
  seconds and raises `LockHeldError` after `lock_attempts` tries (retrying forever if
  `lock_attempts` is 0). The returned lock has `unlock()` and works as a context manager.
- `list_package_files` returns `PackageFile(path, executable)` for every file in the
  package, paths relative to the package directory.
- `open_package_file` / `create_package_file` open a file in binary mode;
  `lock_and_open_package_file` / `lock_and_create_package_file` do the same while
  holding the package lock, released when the returned object is closed.
- `delete_package` removes everything in the package except its lock file.
- `get_host(name)` / `set_host(name, host)` read and write a `Host(address)` record in
  `common/host/<name>/host.yaml`.
- `open_service_clout(namespace, service_name)` locks the service and returns
  `(lock, clout)` with the Clout loaded as plain YAML data; the caller unlocks.
  `save_service_clout` writes the Clout back as YAML.

### `khutulun.watcher`

`Watcher(state, on_changed)` watches every non-hidden directory under the state root
(raising `FileNotFoundError` if the root is missing). After `start()`, it calls
`on_changed(change, identifier)` with a `Change` (`ADDED`, `REMOVED`, `CHANGED`) and an
identifier such as `["namespace", name]` or `[type, namespace, name]`. `stop()` stops
it. `Dir.from_path(path).identifier()` gives the identifier for a relative path and
whether the path lies inside a package.

### `khutulun.clout`

`Capability(vertex_id, capability_name).find(clout)` returns the vertex and the
capability value; `Relationship(vertex_id, edges_out_index).find(clout)` returns the
outgoing edge. Both raise `CloutLookupError` when the target is missing.

### `khutulun.schedule`

`schedule_host(capability, host)` sets the capability's `attributes.host.$value` and
returns whether it changed. `schedule_ip_port(relationship, ip, port)` sets the
`ip` and `port` attribute values and returns whether both were present.

### `khutulun.image_reference`

`OCIImageReference` holds `artifact`, `reference`, `host`, `image`, `tag`, `port`,
`repository`, `digest_algorithm` and `digest_hex`. `from_value(mapping)` reads
kebab-case keys, `validate()` raises `InvalidImageReference` for inconsistent fields,
and `str()` gives `[host[:port]/][repository/]image[:tag][@algorithm:hex]`, or the
literal `reference` when set.

### `khutulun.identifiers`

`ServiceIdentifier(namespace, name)` prints as `namespace,name`.
`ServiceIdentifiers` keeps distinct identifiers in insertion order: `has`, `add(*ids)`
and `merge(other)` (both return whether anything was added); it prints as a
`;`-separated list.

### `khutulun.systemd` and `khutulun.units`

`user_systemd_path(name)` is `~/.config/systemd/user/<name>`;
`create_user_systemd_file(name)` opens it for writing; `enable_user_systemd(name)`
reloads, enables and restarts the unit and enables lingering, raising `SystemdError`
on failure.

`render_process_unit(command, arguments)` returns the unit text for a process;
`podman_create_args(name, reference, create_arguments, ports)` and
`podman_generate_args(name)` build podman argument lists, with `MappedPort(address,
external, internal, protocol)` turned into `--publish` options.
`create_process_user_service` and `create_container_user_service` write the unit
`khutulun-<name>.service` and enable it; podman failures raise `PodmanError`.

### `khutulun.interaction`

`new_command(command, environment, pseudo_terminal, width=None, height=None)` builds a
`Command`, defaulting to `/bin/bash` (with `-i` when a pseudo-terminal is requested).
`podman_exec_command(command, identifier)` wraps it in `podman exec` for the activity
named by a four-part identifier, raising `MalformedIdentifier` otherwise.
`Command.add_path(variable, path)` appends a directory to a path-list variable.

## Example

```python
from khutulun.state import State
from khutulun.image_reference import OCIImageReference
from khutulun.units import render_process_unit

state = State("/var/lib/khutulun")
for identifier in state.list_packages("", "service"):
    print(identifier.namespace, identifier.name)

reference = OCIImageReference.from_value(
    {"host": "registry.example.com", "image": "web", "tag": "latest"}
)
reference.validate()
print(str(reference))  # registry.example.com/web:latest

print(render_process_unit("/usr/bin/sleep", ["infinity"]))
```

## What this package does not do

- It has no command-line tool, no cluster server or client, and no network protocol;
  it is a library only.
- `khutulun.interaction` builds command lines but does not start them or relay their
  input and output.
- Clouts are handled as plain YAML data; there is no TOSCA compiler, no Clout coercion
  and no extraction of containers, processes or connections from a Clout.

## Running the tests

```
pip install -e .[test]
pytest
```