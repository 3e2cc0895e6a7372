"""Natural-language understanding for project-management commands.

The nlu layer converts a French/English sentence ("passe les projets en cours en annulé") into a
strict `ParseQueryResult`, which the command router then turns into a read result or a
confirmation-pending mutation.
"""
