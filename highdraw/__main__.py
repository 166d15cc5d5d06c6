from highdraw.cli import run

run()
