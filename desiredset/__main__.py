"""
CLI entry point, when used as a module: `python -m desiredset`.

Useful for debugging in the IDEs (use the start-mode "Module", module "desiredset").
"""
from desiredset import cli

if __name__ == '__main__':
    cli.main()
