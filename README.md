# composeloader

Building blocks for reading Compose application models from YAML and
bringing them into a canonical shape. Everything works on plain Python
dictionaries and lists.

## Installation

```
pip install composeloader
```

To run the test suite:

```
pip install "composeloader[test]"
pytest
```

## Modules

### `composeloader.loader`

- `parse_yaml(source)` parses the first YAML document of `source` (a `str`
  or `bytes`) into a dictionary. It raises `LoaderError` when there is no
  document, when the top-level value is not a mapping
  (`Top-level object must be a mapping`) or when a key is not a string.
- `convert_to_string_keys(value, key_prefix)` copies a parsed value and
  reports the location of the first non-string key, e.g.
  `Non-string key in services: 123` or
  `Non-string key in networks.default.ipam.config[0]: 123`.
- `normalize_project_name(name)` lower-cases a name, keeps only letters,
  digits, `-` and `_`, and strips leading `-` and `_`.
  `invalid_project_name_error(name)` builds the matching `LoaderError`.
- `resolve_project_name(options, contents, environment)` settles the project
  name: a name set imperatively on `options` is checked and kept; otherwise
  the last non-empty `name` found in the YAML contents is used, passed
  through `options.interpolate` when given and interpolation is not skipped,
  then normalized. The result is stored on `options` and, when an
  environment mapping is passed, under `COMPOSE_PROJECT_NAME`.
- `process_extensions(model, path)` moves `x-*` attributes of each mapping
  into an `#extensions` entry, except directly under `services`, `volumes`,
  `networks`, `secrets` and `configs`, where `x-` keys are resource names.
- `convert_volume_path(source)` turns a Windows drive path such as
  `c:\data` into `/c/data`; other paths are returned unchanged.
- `CycleTracker.add(filename, service)` returns a longer chain of
  `extends` references, or raises `LoaderError` with a
  `Circular reference:` trace when the service is already in the chain.
- `Options` is a dataclass of loading switches (`skip_validation`,
  `skip_interpolation`, `resolve_paths`, `profiles`, `resource_loaders`,
  `listeners`, …). `set_project_name`, `process_event` (calls every
  listener) and `remote_resource_loaders` (every loader but the local one,
  logging a warning when the local loader is not last) work on it.
- `LocalResourceLoader(working_dir)` resolves files relative to a working
  directory: `accept` checks that the path exists, `load` returns it as an
  absolute path, `dir` returns its folder relative to the working directory.

### `composeloader.reset`

- `parse_documents(source)` yields, for each YAML document, its data and a
  `ResetProcessor` holding the paths tagged `!reset` or `!override`.
  Values tagged `!reset` are dropped from the document; values tagged
  `!override` are kept as plain data.
- `ResetProcessor.apply(target)` deletes the mapping entries at the
  recorded paths from a model.
- `path_matches(path, pattern)` compares dotted paths, with `*` matching
  any one segment.

### `composeloader.normalize`

`normalize(model, env)` works in place and returns the model:

- services without `network_mode` and without networks join the
  `default` network, which is then declared at top level;
- `build` gets `context: .` and, unless `dockerfile_inline` is set,
  `dockerfile: Dockerfile`; unset build args are filled from `env` or
  dropped;
- unset `environment` entries are filled from `env` (`FOO` becomes
  `FOO=value`) or kept as they are;
- `pull_policy: if_not_present` becomes `missing`;
- `links`, `volumes_from` and `service:` references in `network_mode`,
  `ipc`, `pid`, `uts` and `cgroup` add implicit `depends_on` entries,
  never replacing explicit ones;
- networks, volumes, configs and secrets without a name are named
  `<project>_<key>`, or just `<key>` when external.

`normalize_networks`, `resolve`, `set_name_from_key` and `is_true` are the
individual steps.

### `composeloader.paths`

`abs_path(working_dir, file_path)` makes a path absolute, expanding a
leading `~`; `resolve_paths` applies it to a list (keeping `None`);
`abs_compose_files` and `resolve_relative_paths` make paths absolute
against the current directory.

## Example

```python
from composeloader.loader import parse_yaml
from composeloader.normalize import normalize

model = parse_yaml(b"""
name: demo
services:
  web:
    image: nginx
    environment:
      - GREETING
""")
model = normalize(model, {"GREETING": "hello"})

print(model["services"]["web"]["environment"])  # ['GREETING=hello']
print(model["networks"]["default"]["name"])     # demo_default
```

## What it does not do

There is no single function that loads a set of Compose files into a
project. The package does not interpolate `${VAR}` expressions itself,
validate against a schema, merge several files, apply `extends` or
`include`, read `env_file`s, or check a model for consistency. `Options`
holds the switches for such a pipeline, but nothing in the package runs
one; the pieces above are meant to be combined by the caller.