from termcolor import colored

###############################################################################
# Output prefixes
###############################################################################

CHECKMARK    = '[' + colored("✓", "green") + ']'
CROSSMARK    = '[' + colored("✗", "red") + ']'
QUESTIONMARK = '[' + colored("?", "yellow") + ']'
INFOMARK     = '[' + colored("i", "blue") + ']'

def _message(prefix: str, raw_prefix: str, *args):
    msg = '\n'.join(str(arg) for arg in args)
    first = True
    for line in msg.split('\n'):
        if first: print(f"{prefix} {line}")
        else:     print(f"{' ' * len(raw_prefix)} {line}")
        first = False

# Use CROSSMARK for errors
def error(*msg): _message(CROSSMARK, '[✗]', *msg)

# Use QUESTIONMARK for warnings
def warning(*msg): _message(QUESTIONMARK, '[?]', *msg)

# Use INFOMARK for information
def info(*msg): _message(INFOMARK, '[i]', *msg)

# Use CHECKMARK for success
def success(*msg): _message(CHECKMARK, '[✓]', *msg)


def rule(width: int = 72) -> None:
    print('=' * width)
