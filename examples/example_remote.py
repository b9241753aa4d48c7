"""Example: Reading the first rows of a table stored on S3 or behind HTTP."""

from xlsx_tables import XlsxDataContext
from xlsx_tables.export import write_csv

# S3 URI (needs the s3 extra) or an HTTP(S) URL (needs the http extra)
context = XlsxDataContext("s3://my-bucket/path/to/file.xlsx")

# Or pass an explicit resource for more control
# import boto3
# from xlsx_tables.resources import S3Resource
# s3_client = boto3.client("s3", region_name="us-east-1")
# resource = S3Resource(bucket="my-bucket", key="path/to/file.xlsx", client=s3_client)
# context = XlsxDataContext(resource)

table = context.get_table("Sheet1")
print("Columns:", table.column_names)

# Only the first 100 rows are parsed; the rest of the sheet is never read.
count = write_csv(context.execute_query(table, max_rows=100), "first_rows.csv")
print(f"{count} rows exported to first_rows.csv")
