# Address space: memory, call stack, framebuffer
