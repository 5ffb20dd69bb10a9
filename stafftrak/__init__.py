# StaffTrak support package
# Modules:
#   db.py           : Supabase / Postgres connection and row helpers
#   auth.py         : Session management, sign-in and the OAuth callback flow
#   roles.py        : Role → navigation links, badges and route access
#   status.py       : Meeting, observation and evaluation status derivation
#   scoring.py      : Rating bands and overall score
#   meetings.py     : Meeting scheduling, notes and sign-off
#   observations.py : Observation scheduling, notes and staff forms
#   rubrics.py      : Rubric / domain / standard reference data
#   evaluations.py  : Summative evaluation drafting and signatures
#   staff.py        : Staff directory, provisioning and CSV import
#   notify.py       : Email notifications via the send-email edge function
#   reports.py      : District reporting queries and summaries
#   pdf.py          : Summative evaluation PDF export
#   ui.py           : Shared page chrome (sidebar navigation)
