# Peripherals: frame divider, keypad, display, buzzer, terminal input
