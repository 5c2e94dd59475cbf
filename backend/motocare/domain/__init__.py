# Overview: Pure domain layer (entities, permissions, application snapshot).
