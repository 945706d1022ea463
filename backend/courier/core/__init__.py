"""Core building blocks shared by every Courier module.

- domain: ValueObject, Entity and AggregateRoot base classes
- events: DomainEvent base and the in-process event bus
- cqrs: Command and CommandHandler base classes
- Cross-cutting: clock, configuration, errors, logging
"""
