# "env" action: prints the variable named by INPUT_NAME, or <unset>.
import os

print(os.environ.get(os.environ["INPUT_NAME"], "<unset>"))
