"""Console walk-through of the registration styles.

Run with `python examples/date_writer.py` after `pip install -e .`.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Protocol

from scopebind import Container, ContainerBuilder, Typed


class IOutput(Protocol):
    def write(self, content: str) -> None: ...


class ConsoleOutput:
    def write(self, content: str) -> None:
        print(content)


class IDateWriter(Protocol):
    def write_date(self) -> None: ...

    def write_specific_date(self, when: datetime) -> None: ...


class TodayWriter:
    def __init__(self, output: IOutput) -> None:
        self.output = output
        self.fixed: datetime | None = None

    @classmethod
    def for_date(cls, when: datetime) -> TodayWriter:
        writer = cls(ConsoleOutput())
        writer.fixed = when
        return writer

    def write_date(self) -> None:
        self.output.write(str(self.fixed or date.today()))

    def write_specific_date(self, when: datetime) -> None:
        self.output.write(str(when))


def write_date(container: Container) -> None:
    with container.begin_lifetime_scope() as scope:
        writer = scope.resolve(IDateWriter)
        writer.write_date()
        writer.write_specific_date(datetime.now())
        print()


def main() -> None:
    print("Registering components via reflection on type")
    builder = ContainerBuilder()
    builder.register_type(ConsoleOutput).as_(IOutput)
    builder.register_type(TodayWriter).as_(IDateWriter)
    write_date(builder.build())

    print("Registering components via instances")
    builder = ContainerBuilder()
    builder.register_instance(ConsoleOutput()).as_(IOutput)
    builder.register_instance(TodayWriter(ConsoleOutput())).as_(IDateWriter)
    write_date(builder.build())

    print("Registering components via factory functions")
    builder = ContainerBuilder()
    builder.register_factory(lambda _: ConsoleOutput()).as_(IOutput)
    builder.register_factory(lambda c: TodayWriter(c.resolve(IOutput))).as_(IDateWriter)
    write_date(builder.build())

    print("Exposing a component as itself and as a service")
    builder = ContainerBuilder()
    builder.register_type(ConsoleOutput).as_(IOutput)
    builder.register_type(TodayWriter).as_self().as_(IDateWriter).instance_per_lifetime_scope()
    container = builder.build()
    with container.begin_lifetime_scope() as scope:
        writer = scope.resolve(IDateWriter)
        writer.write_date()
        same = scope.resolve(TodayWriter)
        same.write_specific_date(datetime.now())
        print(f"same object: {writer is same}")
        print()

    print("Choosing a constructor through a typed parameter")
    builder = ContainerBuilder()
    builder.register_type(TodayWriter).as_(IDateWriter).using_constructors(
        TodayWriter, TodayWriter.for_date
    ).with_parameter(Typed(datetime, datetime(2000, 1, 1)))
    write_date(builder.build())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
