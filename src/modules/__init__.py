"""
Kilnbook studio modules.

- glazes: glaze recipes
- firing: firing logs, cone lookup and warnings
- kilns: kiln inventory
- materials: clay bodies, raw materials and the base material catalogue
- sessions: live firing tracker and the active session
- studio: cached data access, settings, export and import
- shared: base repository, domain exceptions and validators
"""
