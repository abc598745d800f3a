from rich.pretty import pprint

from argot import *


@record
class Add:
    name: str = arg("positional,required", help="remote name")
    url: str = arg("positional,required", help="remote url")


@record
class Remote:
    add: Add | None = arg("subcommand", help="add a remote")


@record
class Git:
    verbose: bool = arg("-v,--verbose", help="talk more")
    jobs: uint8 = arg("-j,--jobs", default=4, env="GIT_JOBS", min=1, max=64, help="parallel jobs")
    remote: Remote | None = arg("subcommand", help="manage remotes")


if __name__ == '__main__':
    args = Git()
    must_parse(args, Config(program="git", description="a tiny git front-end"))
    pprint(args)
