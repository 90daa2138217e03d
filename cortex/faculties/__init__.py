"""Specialised faculties and the router that picks between them."""
