# CPU core: registers, ALU helpers, decoder, instruction handlers
