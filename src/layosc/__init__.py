# -*- coding: utf-8 -*-
"""# layosc Documentation

A bridge between clients that speak gate-level OSC over UDP and quantum
execution layers.

- `layosc.server`: standalone bridge server (receiver, runner and sender
  tasks) driving a local execution backend.
- `layosc.layer`: `OscLayer`, a layer that forwards gate operations to a
  remote OSC device.
- `layosc.codec`: OSC encoding/decoding of the request/response vocabulary.
- `layosc.types`: messages, errors, channels and the `Layer` contract.
- `layosc.backend`: state-vector simulator backend and qubit mappings.
- `layosc.system`: named bridge configurations.
- `layosc.cli`: the `layosc` command.

## Wire vocabulary

| Address | Direction | Args |
|---|---|---|
| /InitZero | request | int x, int y |
| /X /Y /Z /H /S /Sdg /T /Tdg | request | int x, int y |
| /CX | request | int x1, y1, x2, y2 |
| /Mz | request | int x, int y |
| /Mz | response | int index, float bit (0.0/1.0) |
"""

from ._version import __version__
