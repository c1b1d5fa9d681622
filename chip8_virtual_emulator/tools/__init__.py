# Offline tooling built on the emulator core
